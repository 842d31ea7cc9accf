import argparse
import asyncio
import logging
import sys

from src.api.deps import DeliveryServices, build_services
from src.app_shell.config import load_config
from src.core.errors import ConfigError, DeliveryError

logger = logging.getLogger("cli")


def get_services() -> DeliveryServices:
    try:
        config = load_config()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)
    logging.basicConfig(level=config.log_level)
    return build_services(config)


def handle_sign(services: DeliveryServices, args: argparse.Namespace) -> None:
    try:
        signed = asyncio.run(
            services.orchestrator.issue_signed_url(
                args.path, ttl=args.ttl, base_url=args.base_url
            )
        )
    except DeliveryError as e:
        logger.error("Cannot sign %s: %s", args.path, e.public_message)
        sys.exit(1)

    print(f"URL: {signed.url}")
    print(f"Token: {signed.token}")
    print(f"Expires: {signed.expires}")


def handle_verify(services: DeliveryServices, args: argparse.Namespace) -> None:
    try:
        path = services.resolver.normalize(args.path)
    except DeliveryError as e:
        logger.error("Invalid path %s: %s", args.path, e.public_message)
        sys.exit(1)

    if services.tokens.verify(path, args.token, args.expires):
        print("valid")
    else:
        print("invalid")
        sys.exit(1)


def handle_purge(services: DeliveryServices, args: argparse.Namespace) -> None:
    removed = services.cache.purge_partials()
    print(f"Removed {removed} partial file(s).")


def handle_serve(services: DeliveryServices, args: argparse.Namespace) -> None:
    import uvicorn

    from src.api.main import create_app

    uvicorn.run(create_app(services.config), host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Asset delivery CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # sign
    sign_parser = subparsers.add_parser("sign", help="Issue a signed URL for a private file")
    sign_parser.add_argument("path", help="Storage-relative path, e.g. private/report.pdf")
    sign_parser.add_argument("--ttl", type=int, help="Lifetime in seconds")
    sign_parser.add_argument("--base-url", default="", help="Prefix for the printed URL")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Check a token against a path")
    verify_parser.add_argument("path")
    verify_parser.add_argument("token")
    verify_parser.add_argument("expires")

    # purge-partials
    subparsers.add_parser("purge-partials", help="Delete temp files left in the transform cache")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    services = get_services()

    if args.command == "sign":
        handle_sign(services, args)
    elif args.command == "verify":
        handle_verify(services, args)
    elif args.command == "purge-partials":
        handle_purge(services, args)
    elif args.command == "serve":
        handle_serve(services, args)


if __name__ == "__main__":
    main()
