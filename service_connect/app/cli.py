"""
Operational commands for the connect service.

    python -m service_connect.app.cli config-validate
    python -m service_connect.app.cli token-validate <token>
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import ValidationError

from shared.config import generate_env_docs, get_config
from shared.security import mask_token, validate_token_security


def _config_validate(args: argparse.Namespace) -> int:
    try:
        config = get_config()
    except ValidationError as exc:
        print(f"[config] validation failed: {exc}", file=sys.stderr)
        return 1

    print("[config] configuration is valid")
    print(f"Environment: {config.environment}")
    print(f"Server: {config.server_name} v{config.server_version}")
    print(f"Base URL: {config.base_url}")
    if config.api_token:
        print(f"Token: {mask_token(config.api_token)}")
    else:
        print("[config] no API token configured")
    return 0


def _config_docs(args: argparse.Namespace) -> int:
    args.output.write_text(generate_env_docs())
    print(f"[config] environment documentation written to {args.output}")
    return 0


def _token_validate(args: argparse.Namespace) -> int:
    token = args.token
    if token is None:
        try:
            token = get_config().api_token
        except ValidationError as exc:
            print(f"[token] could not load configuration: {exc}", file=sys.stderr)
            return 1
    if not token:
        print("[token] no token provided and CENTERPOINT_API_TOKEN is not set", file=sys.stderr)
        return 1

    result = validate_token_security(token)
    print(f"Token: {mask_token(token)}")
    print(f"Valid: {'yes' if result.is_valid else 'no'}")
    for error in result.errors:
        print(f"  error: {error}")
    for warning in result.warnings:
        print(f"  warning: {warning}")
    return 0 if result.is_valid else 1


def _health_check(args: argparse.Namespace) -> int:
    url = f"{args.url.rstrip('/')}/health"
    try:
        response = httpx.get(url, timeout=args.timeout)
    except httpx.HTTPError as exc:
        print(f"[health] request to {url} failed: {exc}", file=sys.stderr)
        return 2

    try:
        report = response.json()
    except ValueError:
        print(f"[health] unexpected response ({response.status_code}) from {url}", file=sys.stderr)
        return 2

    print(json.dumps(report, indent=2))
    return 0 if report.get("status") == "healthy" else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CenterPoint Connect operational tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("config-validate", help="Validate current configuration")
    validate.set_defaults(handler=_config_validate)

    docs = subparsers.add_parser("config-docs", help="Generate environment variable documentation")
    docs.add_argument("--output", type=Path, default=Path("ENVIRONMENT.md"), help="Where to write the docs")
    docs.set_defaults(handler=_config_docs)

    token = subparsers.add_parser("token-validate", help="Validate API token security")
    token.add_argument("token", nargs="?", default=None, help="Token to check (defaults to CENTERPOINT_API_TOKEN)")
    token.set_defaults(handler=_token_validate)

    health = subparsers.add_parser("health-check", help="Check server health status")
    health.add_argument("--url", default="http://localhost:8090", help="Base URL of the running service")
    health.add_argument("--timeout", type=float, default=5.0, help="Request timeout in seconds")
    health.set_defaults(handler=_health_check)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
