"""
Host expansion for cluster-local domain names.
"""

from typing import Iterable, List, Set

from .config import DEFAULT_CLUSTER_DOMAIN


def expanded_hosts(
    hosts: Iterable[str],
    cluster_domain: str = DEFAULT_CLUSTER_DOMAIN,
) -> List[str]:
    """
    Expand hosts into every equivalent form reachable in the cluster.

    For example, with the default cluster domain,
    'hello.ns.svc.cluster.local' expands to 'hello.ns',
    'hello.ns.svc' and 'hello.ns.svc.cluster.local'.

    Args:
        hosts: Host names to expand
        cluster_domain: Cluster domain suffix (e.g., 'cluster.local')

    Returns:
        Sorted list of unique host names
    """
    suffixes = ["", "." + cluster_domain, ".svc." + cluster_domain]

    result: Set[str] = set()
    for host in hosts:
        for suffix in suffixes:
            if not suffix:
                trimmed = host
            elif host.endswith(suffix):
                trimmed = host[: -len(suffix)]
            else:
                continue
            # Never produce a bare single-label name.
            if "." in trimmed:
                result.add(trimmed)
    return sorted(result)


def is_cluster_local_host(
    host: str,
    cluster_domain: str = DEFAULT_CLUSTER_DOMAIN,
) -> bool:
    """Whether a host lives under the cluster's internal domain."""
    return host.endswith(cluster_domain)
