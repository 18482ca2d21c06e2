"""
Deterministic naming helpers for generated resources.
"""

import hashlib

# Kubernetes object names (DNS-1123 labels) are capped at 63 characters.
MAX_NAME_LENGTH = 63
MD5_HEX_LENGTH = 32


def child_name(parent: str, suffix: str) -> str:
    """
    Generate a child resource name from a parent name and a suffix.

    The result is at most 63 characters and depends only on the inputs.
    Names that would be too long get an md5 digest in place of the part
    that does not fit.

    Args:
        parent: Parent name (e.g., 'myingress-contour-external-')
        suffix: Suffix to append (e.g., a host name)

    Returns:
        Child resource name
    """
    if len(parent) + len(suffix) <= MAX_NAME_LENGTH:
        return parent + suffix

    if len(suffix) >= MAX_NAME_LENGTH - MD5_HEX_LENGTH:
        # No room for any of the parent: hash the whole thing.
        digest = hashlib.md5((parent + suffix).encode()).hexdigest()
        head = MAX_NAME_LENGTH - MD5_HEX_LENGTH
        name = parent[:head] + digest
        remaining = MAX_NAME_LENGTH - len(name)
        if remaining > 0:
            name += suffix[:remaining]
        return name.rstrip("-")

    digest = hashlib.md5(parent.encode()).hexdigest()
    head = MAX_NAME_LENGTH - len(suffix) - MD5_HEX_LENGTH
    return parent[:head] + digest + suffix


def domain_hash(host: str) -> str:
    """Non-reversible, fixed-length digest of a host, used as a label value."""
    return hashlib.sha1(host.encode()).hexdigest()
