"""
CLI tool for K3s Contour.

Compiles Ingress YAML into Contour HTTPProxy manifests.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .config import Settings, load_settings
from .generators import generate_all_manifests, make_httpproxies
from .services import service_names
from .types import Ingress


def load_ingress(path: str) -> Ingress:
    """
    Load an Ingress from a YAML file.

    Args:
        path: Path to the ingress YAML

    Returns:
        Parsed Ingress

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file does not hold an Ingress
    """
    ingress_path = Path(path)
    if not ingress_path.exists():
        raise FileNotFoundError(f"Ingress file not found: {path}")

    with open(ingress_path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "spec" not in data:
        raise ValueError(f"{path} does not contain an Ingress")
    return Ingress.from_dict(data)


def load_protocols(
    path: Optional[str] = None,
    overrides: Optional[List[str]] = None,
) -> Dict[str, str]:
    """
    Build the service-to-protocol map.

    Args:
        path: Optional YAML file mapping service name to protocol
        overrides: 'service=protocol' pairs, applied after the file

    Returns:
        Dict of service name to protocol

    Raises:
        FileNotFoundError: If the protocols file does not exist
        ValueError: If an override is not of the form 'service=protocol'
    """
    protocols: Dict[str, str] = {}

    if path:
        protocols_path = Path(path)
        if not protocols_path.exists():
            raise FileNotFoundError(f"Protocols file not found: {path}")
        with open(protocols_path) as f:
            data = yaml.safe_load(f) or {}
        protocols.update({str(k): str(v) for k, v in data.items()})

    for override in overrides or []:
        service, sep, protocol = override.partition("=")
        if not sep or not service or not protocol:
            raise ValueError(f"Invalid protocol {override!r}: expected 'service=protocol'")
        protocols[service] = protocol

    return protocols


def cmd_generate(args: argparse.Namespace) -> None:
    """Generate HTTPProxy manifests."""
    try:
        ingress = load_ingress(args.ingress)
        settings: Settings = load_settings(args.config)
        protocols = load_protocols(args.protocols, args.protocol)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Generating HTTPProxies for {ingress.namespace}/{ingress.name}")
    print(f"  Rules: {len(ingress.spec.rules)}")
    print(f"  Internal encryption: {settings.network.internal_encryption}")
    print(f"  Default TLS secret: {settings.contour.default_tls_secret or '(none)'}")

    proxies = make_httpproxies(ingress, protocols, settings)
    manifest_path = generate_all_manifests(proxies, args.output)

    if manifest_path:
        print(f"Wrote {len(proxies)} HTTPProxies to {manifest_path}")
    else:
        print("No HTTPProxies to generate")


def cmd_services(args: argparse.Namespace) -> None:
    """List backend services referenced by an ingress."""
    try:
        ingress = load_ingress(args.ingress)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    services = service_names(ingress)
    if not services:
        print("No backend services referenced")
        return

    print("Backend Services:")
    print("-" * 60)
    for name in sorted(services):
        info = services[name]
        visibilities = ",".join(v.value for v in info.sorted_visibilities())
        rewrite = f" [host: {info.rewrite_host}]" if info.rewrite_host else ""
        print(f"  {name}:{info.port} ({visibilities}){rewrite}")

    print(f"\nTotal: {len(services)} services")


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="K3s Contour CLI - Compile Ingress objects into Contour HTTPProxies"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate HTTPProxy manifests")
    gen_parser.add_argument(
        "--ingress",
        required=True,
        help="Path to the Ingress YAML"
    )
    gen_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to settings YAML (default: built-in defaults)"
    )
    gen_parser.add_argument(
        "--protocols",
        default=None,
        help="Path to YAML mapping service name to backend protocol"
    )
    gen_parser.add_argument(
        "--protocol", "-p",
        action="append",
        default=[],
        help="Backend protocol for a service, as service=protocol (repeatable)"
    )
    gen_parser.add_argument(
        "--output", "-o",
        default="./generated/contour",
        help="Output directory for manifests"
    )

    # Services command
    svc_parser = subparsers.add_parser("services", help="List backend services")
    svc_parser.add_argument(
        "--ingress",
        required=True,
        help="Path to the Ingress YAML"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "generate":
        cmd_generate(args)
    elif args.command == "services":
        cmd_services(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
