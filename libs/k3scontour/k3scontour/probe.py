"""
Probe insertion, applied to a private copy of the ingress before compilation.

Every path gets a K-Network-Hash header carrying a digest of the ingress, so
a prober can tell when the proxy has picked up the latest configuration.
"""

import copy
import hashlib
import json

from .types import Ingress

HASH_KEY = "K-Network-Hash"


def compute_hash(ingress: Ingress) -> str:
    """Digest of the ingress spec and identity."""
    data = json.dumps(ingress.spec.to_dict(), sort_keys=True).encode()
    data += ingress.namespace.encode()
    data += ingress.name.encode()
    return hashlib.sha256(data).hexdigest()


def insert_probe(ingress: Ingress) -> str:
    """
    Add the probe hash header to every path of the ingress, in place.

    Returns:
        The inserted hash
    """
    digest = compute_hash(ingress)
    for rule in ingress.spec.rules:
        for path in rule.paths:
            path.append_headers[HASH_KEY] = digest
    return digest


def prepare(ingress: Ingress) -> Ingress:
    """Return a probe-ready copy of the ingress, leaving the input untouched."""
    prepared = copy.deepcopy(ingress)
    insert_probe(prepared)
    return prepared
