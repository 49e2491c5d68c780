"""Message handlers for the desktop bridge.

Each handler processes a specific message type and returns a response.
Errors never escape a handler: they become error responses carrying a code
and a display string.
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Any

from mcphub_bridge import __version__
from mcphub_bridge.context import BridgeContext
from mcphub_bridge.errors import MCPHubError
from mcphub_bridge.installer.runtime import RuntimeKind

logger = logging.getLogger(__name__)

# Type alias for message handlers
MessageHandler = Callable[[dict[str, Any], BridgeContext], Coroutine[Any, Any, dict[str, Any]]]


def make_error_response(
    request_id: str,
    code: str,
    message: str,
    details: Any | None = None,
) -> dict[str, Any]:
    """Create a standardized error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {
        "type": "error",
        "request_id": request_id,
        "error": error,
    }


def make_result_response(
    request_type: str,
    request_id: str,
    **kwargs: Any,
) -> dict[str, Any]:
    """Create a standardized result response."""
    return {
        "type": f"{request_type}_result",
        "request_id": request_id,
        **kwargs,
    }


def error_from_exception(request_id: str, action: str, exc: Exception) -> dict[str, Any]:
    """Map an exception raised by the core to an error response."""
    if isinstance(exc, MCPHubError):
        logger.error(f"Failed to {action}: {exc}")
        return make_error_response(request_id, exc.code, str(exc))
    logger.exception(f"Failed to {action}")
    return make_error_response(request_id, "internal_error", f"Failed to {action}: {exc}")


def _parse_kind(message: dict[str, Any]) -> RuntimeKind | None:
    try:
        return RuntimeKind(message.get("kind"))
    except ValueError:
        return None


def _parse_env(value: Any) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    return {str(k): str(v) for k, v in value.items()}


async def handle_hello(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Handle hello message - returns pong with bridge version."""
    return {
        "type": "pong",
        "request_id": message.get("request_id", ""),
        "bridge_version": __version__,
    }


# =============================================================================
# Runtime handlers
# =============================================================================


async def handle_check_runtime(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Check whether a runtime (node or uv) is usable."""
    request_id = message.get("request_id", "")
    kind = _parse_kind(message)
    if kind is None:
        return make_error_response(
            request_id,
            "invalid_params",
            "Missing or invalid 'kind' parameter",
            details={"allowed": [k.value for k in RuntimeKind]},
        )

    try:
        provisioner = ctx.provisioner(kind)
        available = await provisioner.detect()
        logger.debug(f"check {kind.value} result: {available}")
        return make_result_response(
            "check_runtime",
            request_id,
            available=available,
            runtime=provisioner.to_dict(),
        )
    except Exception as e:
        return error_from_exception(request_id, f"check {kind.value}", e)


async def handle_install_runtime(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Install a managed copy of a runtime."""
    request_id = message.get("request_id", "")
    kind = _parse_kind(message)
    if kind is None:
        return make_error_response(
            request_id,
            "invalid_params",
            "Missing or invalid 'kind' parameter",
            details={"allowed": [k.value for k in RuntimeKind]},
        )

    try:
        record = await ctx.provisioner(kind).install()
        return make_result_response(
            "install_runtime",
            request_id,
            installed=True,
            runtime=record.to_dict(),
        )
    except Exception as e:
        return error_from_exception(request_id, f"install {kind.value}", e)


# =============================================================================
# Catalog and server handlers
# =============================================================================


async def handle_check_resource(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Make sure the server catalog is available, fetching it if needed."""
    request_id = message.get("request_id", "")

    try:
        entries = await ctx.catalog.ensure_loaded()
        return make_result_response("check_resource", request_id, loaded=True, count=len(entries))
    except Exception as e:
        return error_from_exception(request_id, "load catalog", e)


async def handle_list_servers(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """List all catalog servers with their install state."""
    request_id = message.get("request_id", "")

    try:
        servers = await ctx.reconciler.list_servers()
        return make_result_response(
            "list_servers",
            request_id,
            servers=[s.to_dict() for s in servers],
        )
    except Exception as e:
        return error_from_exception(request_id, "list servers", e)


async def handle_list_installed_servers(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """List installed servers only."""
    request_id = message.get("request_id", "")

    try:
        servers = await ctx.reconciler.list_installed_servers()
        return make_result_response(
            "list_installed_servers",
            request_id,
            servers=[s.to_dict() for s in servers],
        )
    except Exception as e:
        return error_from_exception(request_id, "list installed servers", e)


async def handle_install_server(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Install a catalog server into the Claude desktop config."""
    request_id = message.get("request_id", "")
    server_id = message.get("server_id")

    if not server_id or not isinstance(server_id, str):
        return make_error_response(request_id, "invalid_params", "Missing or invalid 'server_id' parameter")

    env = None
    if message.get("env") is not None:
        env = _parse_env(message["env"])
        if env is None:
            return make_error_response(request_id, "invalid_params", "'env' must be an object")

    try:
        success = await ctx.reconciler.install(server_id, env)
        return make_result_response("install_server", request_id, success=success)
    except Exception as e:
        return error_from_exception(request_id, f"install server {server_id}", e)


async def handle_update_server(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Replace the env of a server (installing it if needed)."""
    request_id = message.get("request_id", "")
    server_id = message.get("server_id")
    env = _parse_env(message.get("env"))

    if not server_id or not isinstance(server_id, str):
        return make_error_response(request_id, "invalid_params", "Missing or invalid 'server_id' parameter")
    if env is None:
        return make_error_response(request_id, "invalid_params", "Missing or invalid 'env' parameter")

    try:
        success = await ctx.reconciler.update(server_id, env)
        return make_result_response("update_server", request_id, success=success)
    except Exception as e:
        return error_from_exception(request_id, f"update server {server_id}", e)


async def handle_uninstall_server(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Remove a server from the Claude desktop config."""
    request_id = message.get("request_id", "")
    server_id = message.get("server_id")

    if not server_id or not isinstance(server_id, str):
        return make_error_response(request_id, "invalid_params", "Missing or invalid 'server_id' parameter")

    try:
        success = await ctx.reconciler.uninstall(server_id)
        return make_result_response("uninstall_server", request_id, success=success)
    except Exception as e:
        return error_from_exception(request_id, f"uninstall server {server_id}", e)


# Handler registry
HANDLERS: dict[str, MessageHandler] = {
    "hello": handle_hello,
    # Runtime handlers
    "check_runtime": handle_check_runtime,
    "install_runtime": handle_install_runtime,
    # Catalog and server handlers
    "check_resource": handle_check_resource,
    "list_servers": handle_list_servers,
    "list_installed_servers": handle_list_installed_servers,
    "install_server": handle_install_server,
    "update_server": handle_update_server,
    "uninstall_server": handle_uninstall_server,
}


async def dispatch_message(message: dict[str, Any], ctx: BridgeContext) -> dict[str, Any]:
    """Dispatch a message to the appropriate handler."""
    message_type = message.get("type")
    request_id = message.get("request_id", "")

    if not message_type:
        return make_error_response(
            request_id,
            "invalid_message",
            "Missing 'type' field in message",
        )

    handler = HANDLERS.get(message_type)
    if not handler:
        return make_error_response(
            request_id,
            "unknown_message_type",
            f"Unknown message type: {message_type}",
            details={"received_type": message_type},
        )

    return await handler(message, ctx)
