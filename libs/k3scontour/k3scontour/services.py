"""
Backend service inventory for an ingress.
"""

import logging
from typing import Dict, Optional

from .types import Ingress, ServiceInfo

logger = logging.getLogger(__name__)


def service_names(ingress: Optional[Ingress]) -> Dict[str, ServiceInfo]:
    """
    Collect the backend services referenced by an ingress.

    The rewrite host is last-write-wins in rule/path order. It is expected to
    be uniform per service; divergent values are logged.

    Args:
        ingress: Ingress to scan

    Returns:
        Dict of service name to ServiceInfo
    """
    services: Dict[str, ServiceInfo] = {}
    if ingress is None:
        return services

    for rule in ingress.spec.rules:
        for path in rule.paths:
            for split in path.splits:
                info = services.get(split.service_name)
                if info is None:
                    info = ServiceInfo(port=split.service_port)
                    services[split.service_name] = info
                elif (
                    info.rewrite_host
                    and path.rewrite_host
                    and info.rewrite_host != path.rewrite_host
                ):
                    logger.warning(
                        f"Service {split.service_name} has conflicting rewrite hosts "
                        f"{info.rewrite_host!r} and {path.rewrite_host!r}, "
                        f"using {path.rewrite_host!r}"
                    )

                info.visibilities.add(rule.visibility)
                if path.path:
                    info.has_path = True
                info.rewrite_host = path.rewrite_host

    return services
