"""
notetasks MCP server entry point.

Startup sequence:
1. Read VAULT_ROOT, EXCLUDE_DIRS and scanner settings from environment
2. Initialize VaultCache (full vault scan)
3. Start REST API server in background thread (if API_ENABLED)
4. Register all MCP tools
5. Run MCP server (stdio transport)
"""

import logging
import os
import sys
import threading
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from notetasks.cache.vault_cache import VaultCache
from notetasks.errors import ConfigurationError
from notetasks.models.settings import ScanSettings
from notetasks.tools import register_task_tools

log = logging.getLogger(__name__)


def _parse_exclude_dirs(raw: str) -> set[str]:
    """Parse a comma-separated list of directory names to exclude."""
    return {part.strip() for part in raw.split(",") if part.strip()}


def _configure_logging() -> None:
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _start_api_server(cache, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from notetasks.api.app import create_app

    app = create_app(cache)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    _configure_logging()

    vault_root_env = os.environ.get("VAULT_ROOT", "")
    if not vault_root_env:
        log.error("VAULT_ROOT environment variable is not set")
        sys.exit(1)

    vault_root = Path(vault_root_env)
    if not vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", vault_root)
        sys.exit(1)

    exclude_raw = os.environ.get("EXCLUDE_DIRS", ".git,.obsidian,node_modules,.trash")
    exclude_dirs = _parse_exclude_dirs(exclude_raw)

    log.info("Vault root: %s", vault_root)
    log.info("Excluded dirs: %s", exclude_dirs)

    try:
        cache = VaultCache(ScanSettings.from_env())
    except ConfigurationError as e:
        log.error("Invalid scanner configuration: %s", e)
        sys.exit(1)
    cache.initialize(vault_root, exclude_dirs)

    api_enabled = os.environ.get("API_ENABLED", "true").lower() in ("true", "1", "yes")
    if api_enabled:
        api_port = int(os.environ.get("API_PORT", "9400"))
        api_thread = threading.Thread(
            target=_start_api_server, args=(cache, api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("notetasks")
    register_task_tools(mcp, cache)

    log.info("Starting notetasks server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
