"""
Settings for the HTTPProxy compiler.

Settings are loaded once (usually from YAML) and passed explicitly to every
function that needs them.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from .types import Visibility

DEFAULT_CLUSTER_DOMAIN = "cluster.local"
DEFAULT_SYSTEM_NAMESPACE = "knative-serving"
SERVING_INTERNAL_CERT_NAME = "routing-serving-certs"


def parse_bool(key: str, value: object) -> bool:
    """Parse a boolean setting, which config maps usually hold as a string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.lower() == "true":
            return True
        if value.lower() == "false":
            return False
    raise ValueError(f"Invalid value {value!r} for {key}: expected true or false")


def default_visibility_classes() -> Dict[Visibility, str]:
    return {
        Visibility.PUBLIC: "contour-external",
        Visibility.CLUSTER_LOCAL: "contour-internal",
    }


@dataclass(frozen=True)
class NamespacedName:
    """A namespace/name reference to a Kubernetes object."""
    namespace: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "NamespacedName":
        parts = value.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(
                f"Invalid secret reference {value!r}: expected 'namespace/name'"
            )
        return cls(namespace=parts[0], name=parts[1])

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class ContourConfig:
    """Contour-specific settings."""
    visibility_classes: Dict[Visibility, str] = field(default_factory=default_visibility_classes)
    timeout_policy_response: str = "infinity"
    timeout_policy_idle: str = "infinity"
    default_tls_secret: Optional[NamespacedName] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "ContourConfig":
        if not data:
            return cls()

        classes = default_visibility_classes()
        for key, entry in (data.get("visibility") or {}).items():
            visibility = Visibility.from_value(key)
            if isinstance(entry, dict):
                classes[visibility] = entry.get("class", "")
            else:
                classes[visibility] = str(entry)

        secret = data.get("default-tls-secret")
        return cls(
            visibility_classes=classes,
            timeout_policy_response=str(data.get("timeout-policy-response", "infinity")),
            timeout_policy_idle=str(data.get("timeout-policy-idle", "infinity")),
            default_tls_secret=NamespacedName.parse(secret) if secret else None,
        )


@dataclass
class NetworkConfig:
    """Cluster networking settings."""
    internal_encryption: bool = False
    cluster_domain: str = DEFAULT_CLUSTER_DOMAIN
    system_namespace: str = DEFAULT_SYSTEM_NAMESPACE
    serving_internal_cert_name: str = SERVING_INTERNAL_CERT_NAME

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "NetworkConfig":
        if not data:
            return cls()
        return cls(
            internal_encryption=parse_bool(
                "internal-encryption", data.get("internal-encryption", False)
            ),
            cluster_domain=data.get("cluster-domain", DEFAULT_CLUSTER_DOMAIN),
            system_namespace=data.get("system-namespace", DEFAULT_SYSTEM_NAMESPACE),
            serving_internal_cert_name=data.get(
                "serving-internal-cert-name", SERVING_INTERNAL_CERT_NAME
            ),
        )

    @property
    def internal_ca_secret(self) -> str:
        """CA used to validate encrypted east-west upstreams."""
        return f"{self.system_namespace}/{self.serving_internal_cert_name}"


@dataclass
class Settings:
    """Complete compiler settings."""
    contour: ContourConfig = field(default_factory=ContourConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "Settings":
        if not data:
            return cls()
        return cls(
            contour=ContourConfig.from_dict(data.get("contour")),
            network=NetworkConfig.from_dict(data.get("network")),
        )


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load compiler settings from a YAML file.

    Args:
        path: Path to the settings file. Defaults are used if not provided.

    Returns:
        Parsed Settings

    Raises:
        FileNotFoundError: If the settings file does not exist
        ValueError: If a setting has an invalid value
    """
    if not path:
        return Settings()

    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(settings_path) as f:
        return Settings.from_dict(yaml.safe_load(f))
