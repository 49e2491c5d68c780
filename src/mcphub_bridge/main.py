"""
MCPHub Bridge - command line entry point.

Every command is turned into a handler message, dispatched once, and the
JSON response is printed to stdout. Logs go to stderr.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from mcphub_bridge import __version__
from mcphub_bridge.config import Settings
from mcphub_bridge.context import build_context
from mcphub_bridge.errors import MCPHubError
from mcphub_bridge.handlers import dispatch_message, make_error_response

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    # Log to stderr so stdout stays JSON only
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def parse_env_pairs(pairs: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {pair!r}")
        env[key] = value
    return env


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcphub-bridge",
        description="Install runtimes and MCP servers for Claude desktop",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("check-runtime", help="Check whether node or uv is usable")
    p.add_argument("kind", choices=["node", "uv"])

    p = sub.add_parser("install-runtime", help="Download and install node or uv")
    p.add_argument("kind", choices=["node", "uv"])

    sub.add_parser("fetch-catalog", help="Fetch the server catalog if not cached")

    p = sub.add_parser("list", help="List catalog servers")
    p.add_argument("--installed", action="store_true", help="Only installed servers")

    p = sub.add_parser("install", help="Install a server into the Claude config")
    p.add_argument("server_id")
    p.add_argument("--env", nargs="*", default=None, metavar="KEY=VALUE")

    p = sub.add_parser("update", help="Replace a server's environment")
    p.add_argument("server_id")
    p.add_argument("--env", nargs="*", default=[], metavar="KEY=VALUE")

    p = sub.add_parser("uninstall", help="Remove a server from the Claude config")
    p.add_argument("server_id")

    return parser


def build_message(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed arguments into a handler message."""
    request_id = "cli"
    if args.command == "check-runtime":
        return {"type": "check_runtime", "request_id": request_id, "kind": args.kind}
    if args.command == "install-runtime":
        return {"type": "install_runtime", "request_id": request_id, "kind": args.kind}
    if args.command == "fetch-catalog":
        return {"type": "check_resource", "request_id": request_id}
    if args.command == "list":
        message_type = "list_installed_servers" if args.installed else "list_servers"
        return {"type": message_type, "request_id": request_id}
    if args.command == "install":
        message: dict[str, Any] = {
            "type": "install_server",
            "request_id": request_id,
            "server_id": args.server_id,
        }
        if args.env is not None:
            message["env"] = parse_env_pairs(args.env)
        return message
    if args.command == "update":
        return {
            "type": "update_server",
            "request_id": request_id,
            "server_id": args.server_id,
            "env": parse_env_pairs(args.env),
        }
    if args.command == "uninstall":
        return {"type": "uninstall_server", "request_id": request_id, "server_id": args.server_id}
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        message = build_message(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    try:
        settings = Settings.from_env()
        setup_logging("DEBUG" if args.verbose else settings.log_level)
        logger.debug(f"MCPHub Bridge v{__version__}, data dir {settings.data_dir}")
        ctx = build_context(settings)
    except MCPHubError as e:
        response = make_error_response("cli", e.code, str(e))
    else:
        response = asyncio.run(dispatch_message(message, ctx))

    print(json.dumps(response, indent=2, ensure_ascii=False))
    return 1 if response.get("type") == "error" else 0


if __name__ == "__main__":
    sys.exit(main())
