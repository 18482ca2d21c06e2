"""
Contour HTTPProxy generators for K3s Contour.

Compiles an Ingress into one HTTPProxy per (rule, expanded host).
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .config import Settings
from .hosts import expanded_hosts, is_cluster_local_host
from .naming import child_name, domain_hash
from .probe import prepare
from .types import (
    HTTPOption,
    Ingress,
    IngressBackendSplit,
    IngressPath,
    IngressTLS,
    Visibility,
    int_value,
)

logger = logging.getLogger(__name__)

INGRESS_API_VERSION = "networking.internal.knative.dev/v1alpha1"
INGRESS_KIND = "Ingress"

GENERATION_KEY = "k3scontour.io/generation"
PARENT_KEY = "k3scontour.io/parent"
CLASS_KEY = "k3scontour.io/ingress.class"
DOMAIN_HASH_KEY = "k3scontour.io/domain-hash"
# Read from the Ingress as written by Knative.
EXTENSION_SERVICE_KEY = "contour.networking.knative.dev/extension-service"
EXTENSION_SERVICE_NAMESPACE_KEY = "contour.networking.knative.dev/extension-service-namespace"

# Set on splits of domain-mapping traffic.
ORIGINAL_HOST_KEY = "K-Original-Host"
HTTP_CHALLENGE_PATH = "/.well-known/acme-challenge"
INTERNAL_SUBJECT_NAME = "data-plane.knative.dev"
H2C_PROTOCOL = "h2c"


def default_retry_policy() -> Dict[str, Any]:
    """
    Retry connection problems twice.

    Matches Istio's default retry behavior, and also retries connection resets.
    """
    return {
        "count": 2,
        "retryOn": [
            "cancelled",
            "connect-failure",
            "refused-stream",
            "resource-exhausted",
            "retriable-status-codes",
            "reset",
        ],
    }


def generate_timeout_policy(settings: Settings) -> Dict[str, str]:
    return {
        "response": settings.contour.timeout_policy_response,
        "idle": settings.contour.timeout_policy_idle,
    }


def generate_headers_policy(headers: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Build a request headers policy with entries sorted by name.

    The sort is stable, so repeated names keep their input order.
    """
    return {
        "set": [
            {"name": name, "value": value}
            for name, value in sorted(headers, key=lambda h: h[0])
        ],
    }


def generate_conditions(path: IngressPath) -> List[Dict[str, Any]]:
    """
    Build match conditions for a path.

    The prefix condition comes first, then header conditions in descending
    order of header name.
    """
    conditions: List[Dict[str, Any]] = []
    if path.path:
        conditions.append({"prefix": path.path})
    for name in sorted(path.headers, reverse=True):
        conditions.append({
            "header": {
                "name": name,
                "exact": path.headers[name],
            },
        })
    return conditions


def generate_service(
    split: IngressBackendSplit,
    path: IngressPath,
    service_to_protocol: Dict[str, str],
    settings: Settings,
) -> Dict[str, Any]:
    """
    Build the HTTPProxy service entry for one traffic split.

    Args:
        split: Traffic split to route to
        path: Path the split belongs to
        service_to_protocol: Backend protocol per service name
        settings: Compiler settings

    Returns:
        HTTPProxy route service as dict
    """
    service: Dict[str, Any] = {
        "name": split.service_name,
        "port": int_value(split.service_port),
        "weight": split.percent,
    }

    if split.append_headers:
        service["requestHeadersPolicy"] = generate_headers_policy(split.append_headers.items())

    if split.service_name in service_to_protocol:
        # Domain mappings are identified by a rewritten host plus the
        # original host header. Their traffic has to be decrypted on the
        # way back to the proxy, so it goes over cleartext HTTP/2.
        if path.rewrite_host and ORIGINAL_HOST_KEY in split.append_headers:
            service["protocol"] = H2C_PROTOCOL
        else:
            service["protocol"] = service_to_protocol[split.service_name]

    if settings.network.internal_encryption:
        service["validation"] = {
            "caSecret": settings.network.internal_ca_secret,
            "subjectName": INTERNAL_SUBJECT_NAME,
        }

    if HTTP_CHALLENGE_PATH in path.path:
        # HTTP-01 challenges must not be encrypted or use HTTP/2.
        service.pop("protocol", None)
        service.pop("validation", None)

    return service


def generate_route(
    path: IngressPath,
    visibility: Visibility,
    allow_insecure: bool,
    service_to_protocol: Dict[str, str],
    settings: Settings,
) -> Dict[str, Any]:
    """Build the HTTPProxy route for one ingress path."""
    # An appended Host header does not replace the rewrite; both are emitted.
    pre_split_headers = list(path.append_headers.items())
    if path.rewrite_host:
        pre_split_headers.append(("Host", path.rewrite_host))

    route: Dict[str, Any] = {}
    conditions = generate_conditions(path)
    if conditions:
        route["conditions"] = conditions

    route.update({
        "timeoutPolicy": generate_timeout_policy(settings),
        "retryPolicy": default_retry_policy(),
        "requestHeadersPolicy": generate_headers_policy(pre_split_headers),
        "services": [
            generate_service(split, path, service_to_protocol, settings)
            for split in path.splits
        ],
        "permitInsecure": visibility.permits_insecure(allow_insecure),
        "enableWebsockets": True,
    })
    return route


def generate_owner_reference(ingress: Ingress) -> Dict[str, Any]:
    return {
        "apiVersion": INGRESS_API_VERSION,
        "kind": INGRESS_KIND,
        "name": ingress.name,
        "uid": ingress.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def host_to_tls(ingress: Ingress) -> Dict[str, IngressTLS]:
    result: Dict[str, IngressTLS] = {}
    for tls in ingress.spec.tls:
        for host in tls.hosts:
            result[host] = tls
    return result


def make_httpproxies(
    ingress: Ingress,
    service_to_protocol: Optional[Dict[str, str]],
    settings: Settings,
) -> List[Dict[str, Any]]:
    """
    Compile an Ingress into Contour HTTPProxy resources.

    One HTTPProxy is generated per rule and expanded host. The input ingress
    is not modified; probe headers are added to a private copy.

    Args:
        ingress: Ingress to compile
        service_to_protocol: Backend protocol (e.g., 'h2c', 'tls') per service name
        settings: Compiler settings

    Returns:
        List of HTTPProxy manifests as dicts
    """
    service_to_protocol = service_to_protocol or {}
    ing = prepare(ingress)
    tls_by_host = host_to_tls(ing)

    allow_insecure = ing.spec.http_option == HTTPOption.ENABLED

    proxies: List[Dict[str, Any]] = []
    for rule in ing.spec.rules:
        ingress_class = rule.visibility.ingress_class(settings)

        routes = [
            generate_route(path, rule.visibility, allow_insecure, service_to_protocol, settings)
            for path in rule.paths
        ]

        base: Dict[str, Any] = {
            "apiVersion": "projectcontour.io/v1",
            "kind": "HTTPProxy",
            "metadata": {
                "namespace": ing.namespace,
                "labels": {
                    GENERATION_KEY: str(ing.generation),
                    PARENT_KEY: ing.name,
                    CLASS_KEY: ingress_class,
                },
                "annotations": {
                    CLASS_KEY: ingress_class,
                },
                "ownerReferences": [generate_owner_reference(ing)],
            },
            "spec": {
                "routes": routes,
            },
        }

        for original_host in rule.hosts:
            for host in expanded_hosts([original_host], settings.network.cluster_domain):
                proxy = copy.deepcopy(base)
                metadata = proxy["metadata"]

                host_class = ingress_class
                # Internal domains are only ever served by the cluster-local class.
                if is_cluster_local_host(original_host, settings.network.cluster_domain):
                    host_class = Visibility.CLUSTER_LOCAL.ingress_class(settings)
                    metadata["labels"][CLASS_KEY] = host_class
                    metadata["annotations"][CLASS_KEY] = host_class

                metadata["name"] = child_name(f"{ing.name}-{host_class}-", host)
                metadata["labels"][DOMAIN_HASH_KEY] = domain_hash(host)

                virtualhost: Dict[str, Any] = {"fqdn": host}

                extension_service = ing.annotations.get(EXTENSION_SERVICE_KEY)
                if extension_service is not None:
                    extension_ref = {"name": extension_service}
                    extension_namespace = ing.annotations.get(EXTENSION_SERVICE_NAMESPACE_KEY)
                    if extension_namespace is not None:
                        extension_ref["namespace"] = extension_namespace
                    virtualhost["authorization"] = {"extensionRef": extension_ref}

                tls = tls_by_host.get(host)
                if tls is not None:
                    virtualhost["tls"] = {
                        "secretName": f"{tls.secret_namespace}/{tls.secret_name}",
                    }
                elif settings.contour.default_tls_secret is not None:
                    virtualhost["tls"] = {
                        "secretName": str(settings.contour.default_tls_secret),
                    }

                proxy["spec"] = {"virtualhost": virtualhost, **proxy["spec"]}

                logger.debug(f"Generated HTTPProxy {metadata['name']} for {host}")
                proxies.append(proxy)

    return proxies


def generate_all_manifests(
    proxies: List[Dict[str, Any]],
    output_dir: str,
) -> Optional[Path]:
    """
    Write HTTPProxy manifests to the output directory.

    Args:
        proxies: HTTPProxy manifests from make_httpproxies
        output_dir: Output directory for manifests

    Returns:
        Path of the written file, or None if there was nothing to write
    """
    if not proxies:
        logger.info("No HTTPProxies to write")
        return None

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    manifest_path = output_path / "httpproxies.yaml"
    manifest_path.write_text(yaml.dump_all(proxies, default_flow_style=False))
    logger.info(f"Wrote {len(proxies)} HTTPProxies to {manifest_path}")
    return manifest_path
