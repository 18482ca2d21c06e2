"""
Type definitions for K3s Contour.

These dataclasses represent a Knative-style Ingress: rules mapping hosts to
paths, and paths splitting traffic across backend services.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Union

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

# Optional sign and ASCII digits only: no whitespace or underscores.
PORT_PATTERN = re.compile(r"[+-]?[0-9]+")


class Visibility(str, Enum):
    """Traffic visibility of an ingress rule.

    - PUBLIC: reachable from outside the cluster
    - CLUSTER_LOCAL: reachable only from inside the cluster
    """
    PUBLIC = "ExternalIP"
    CLUSTER_LOCAL = "ClusterLocal"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "Visibility":
        if not value:
            return cls.PUBLIC
        aliases = {
            "public": cls.PUBLIC,
            "cluster-local": cls.CLUSTER_LOCAL,
        }
        if value in aliases:
            return aliases[value]
        return cls(value)

    def permits_insecure(self, rule_default: bool) -> bool:
        """Cluster-local traffic is never subject to HTTPS redirects."""
        if self is Visibility.CLUSTER_LOCAL:
            return True
        return rule_default

    def ingress_class(self, settings: "Settings") -> str:
        return settings.contour.visibility_classes.get(self, "")


class HTTPOption(str, Enum):
    """Whether plaintext HTTP traffic is served or redirected."""
    ENABLED = "Enabled"
    REDIRECTED = "Redirected"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["HTTPOption"]:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown httpOption {value!r}, treating as unset")
            return None


def int_value(port: Union[int, str, None]) -> int:
    """Integer value of an int-or-string port (0 if not a plain integer)."""
    if isinstance(port, int):
        return port
    if isinstance(port, str) and PORT_PATTERN.fullmatch(port):
        return int(port)
    return 0


@dataclass
class IngressBackendSplit:
    """A weighted reference to one backend service."""
    service_name: str
    service_namespace: str = ""
    service_port: Union[int, str] = 80
    percent: int = 100
    append_headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> "IngressBackendSplit":
        return cls(
            service_name=data.get("serviceName", ""),
            service_namespace=data.get("serviceNamespace", ""),
            service_port=data.get("servicePort", 80),
            percent=data.get("percent", 100),
            append_headers=dict(data.get("appendHeaders") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serviceName": self.service_name,
            "serviceNamespace": self.service_namespace,
            "servicePort": self.service_port,
            "percent": self.percent,
            "appendHeaders": dict(self.append_headers),
        }


@dataclass
class IngressPath:
    """A path within a rule, with match conditions and traffic splits."""
    path: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    append_headers: Dict[str, str] = field(default_factory=dict)
    rewrite_host: str = ""
    splits: List[IngressBackendSplit] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> "IngressPath":
        # Header matches are written as {name: {exact: value}}
        headers: Dict[str, str] = {}
        for name, match in (data.get("headers") or {}).items():
            if isinstance(match, dict):
                headers[name] = match.get("exact", "")
            else:
                headers[name] = str(match)
        return cls(
            path=data.get("path", ""),
            headers=headers,
            append_headers=dict(data.get("appendHeaders") or {}),
            rewrite_host=data.get("rewriteHost", ""),
            splits=[IngressBackendSplit.from_dict(s) for s in data.get("splits", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "headers": {k: {"exact": v} for k, v in self.headers.items()},
            "appendHeaders": dict(self.append_headers),
            "rewriteHost": self.rewrite_host,
            "splits": [s.to_dict() for s in self.splits],
        }


@dataclass
class IngressRule:
    """Hosts sharing a visibility and a set of paths."""
    hosts: List[str] = field(default_factory=list)
    visibility: Visibility = Visibility.PUBLIC
    paths: List[IngressPath] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> "IngressRule":
        http = data.get("http") or {}
        return cls(
            hosts=list(data.get("hosts", [])),
            visibility=Visibility.from_value(data.get("visibility")),
            paths=[IngressPath.from_dict(p) for p in http.get("paths", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hosts": list(self.hosts),
            "visibility": self.visibility.value,
            "http": {"paths": [p.to_dict() for p in self.paths]},
        }


@dataclass
class IngressTLS:
    """Certificate secret bound to a set of hosts."""
    hosts: List[str] = field(default_factory=list)
    secret_name: str = ""
    secret_namespace: str = ""

    @classmethod
    def from_dict(cls, data: Dict) -> "IngressTLS":
        return cls(
            hosts=list(data.get("hosts", [])),
            secret_name=data.get("secretName", ""),
            secret_namespace=data.get("secretNamespace", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hosts": list(self.hosts),
            "secretName": self.secret_name,
            "secretNamespace": self.secret_namespace,
        }


@dataclass
class IngressSpec:
    """Routing rules, TLS bindings and HTTP option of an ingress."""
    rules: List[IngressRule] = field(default_factory=list)
    tls: List[IngressTLS] = field(default_factory=list)
    http_option: Optional[HTTPOption] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "IngressSpec":
        if not data:
            return cls()
        return cls(
            rules=[IngressRule.from_dict(r) for r in data.get("rules", [])],
            tls=[IngressTLS.from_dict(t) for t in data.get("tls", [])],
            http_option=HTTPOption.from_value(data.get("httpOption")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules": [r.to_dict() for r in self.rules],
            "tls": [t.to_dict() for t in self.tls],
            "httpOption": self.http_option.value if self.http_option else "",
        }


@dataclass
class Ingress:
    """An ingress object: identity metadata plus its spec."""
    name: str
    namespace: str = "default"
    generation: int = 0
    uid: str = ""
    annotations: Dict[str, str] = field(default_factory=dict)
    spec: IngressSpec = field(default_factory=IngressSpec)

    @classmethod
    def from_dict(cls, data: Dict) -> "Ingress":
        metadata = data.get("metadata") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", "default"),
            generation=metadata.get("generation", 0),
            uid=metadata.get("uid", ""),
            annotations=dict(metadata.get("annotations") or {}),
            spec=IngressSpec.from_dict(data.get("spec")),
        )


@dataclass
class ServiceInfo:
    """Aggregate view of one backend service across an ingress."""
    port: Union[int, str]
    visibilities: Set[Visibility] = field(default_factory=set)
    # If the Host header sent to this service is rewritten, track it so
    # probes can send it too.
    rewrite_host: str = ""
    has_path: bool = False

    def sorted_visibilities(self) -> List[Visibility]:
        return sorted(self.visibilities, key=lambda v: v.value)
