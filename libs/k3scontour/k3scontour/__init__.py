"""
K3s Contour - Compile Knative-style Ingress objects into Contour HTTPProxies.

Each ingress rule becomes one HTTPProxy per expanded host, with weighted
service splits, header rewriting, TLS and retry/timeout policies.
"""

from .types import (
    HTTPOption,
    Ingress,
    IngressBackendSplit,
    IngressPath,
    IngressRule,
    IngressSpec,
    IngressTLS,
    ServiceInfo,
    Visibility,
)
from .config import (
    ContourConfig,
    NamespacedName,
    NetworkConfig,
    Settings,
    load_settings,
)
from .services import service_names
from .probe import insert_probe, prepare
from .generators import (
    generate_all_manifests,
    make_httpproxies,
)

__version__ = "0.1.0"
__all__ = [
    # Types
    "HTTPOption",
    "Ingress",
    "IngressBackendSplit",
    "IngressPath",
    "IngressRule",
    "IngressSpec",
    "IngressTLS",
    "ServiceInfo",
    "Visibility",
    # Config
    "ContourConfig",
    "NamespacedName",
    "NetworkConfig",
    "Settings",
    "load_settings",
    # Compiler
    "service_names",
    "insert_probe",
    "prepare",
    "make_httpproxies",
    "generate_all_manifests",
]
