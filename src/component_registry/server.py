"""
Component Registry HTTP server.

Serves read-only queries against the synchronization engine:

    GET /                     index.html
    GET /version              {"version": N}
    GET /components?id=X      {"id": X, "content": ...} or 404
    GET /components?ids=a,b   {"components": [{"id", "content"}, ...]}
    GET /components           {"components": [...]} (every component)

At startup the registry is loaded once, the components directory is
watched, and the HTTP listener is started.
"""

__version__ = "1.0.0"

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
from aiohttp import web

from .registry.engine import SyncEngine
from .registry.watcher import ChangeWatcher
from .storage.kv import KeyValueStore
from .utils.config import RegistryConfig, load_config
from .utils.errors import ManifestError, RegistryError, error_context
from .utils.logging import get_logger, setup_logging


logger = get_logger("component-registry.server")

ENGINE_KEY = web.AppKey("engine", SyncEngine)
INDEX_PATH_KEY = web.AppKey("index_path", Path)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render registry errors as structured JSON 500 responses."""
    try:
        return await handler(request)
    except RegistryError as e:
        logger.error("request_failed", path=request.path, error=e.to_dict())
        return web.json_response(e.to_dict(), status=500)


async def index(request: web.Request) -> web.Response:
    index_path = request.app[INDEX_PATH_KEY]
    try:
        async with aiofiles.open(index_path, "r", encoding="utf-8") as f:
            body = await f.read()
    except OSError as e:
        logger.error("index_read_failed", path=str(index_path), error=str(e))
        return web.Response(status=500, text="Internal Server Error")
    return web.Response(text=body, content_type="text/html")


async def version(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    return web.json_response({"version": await engine.get_version()})


async def components(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    component_id = request.query.get("id")
    ids = request.query.get("ids")

    if component_id:
        content = await engine.get(component_id)
        if content is None:
            return web.Response(status=404, text="Component not found")
        return web.json_response({"id": component_id, "content": content})

    if ids:
        id_list = [i.strip() for i in ids.split(",")]
        records = await engine.get_many(id_list)
    else:
        records = await engine.list_all()

    return web.json_response({"components": [record.to_dict() for record in records]})


def create_app(engine: SyncEngine, index_path: Path | str) -> web.Application:
    """Build the aiohttp application around an engine."""
    app = web.Application(middlewares=[error_middleware])
    app[ENGINE_KEY] = engine
    app[INDEX_PATH_KEY] = Path(index_path)

    app.router.add_get("/", index)
    app.router.add_get("/index.html", index)
    app.router.add_get("/version", version)
    app.router.add_get("/components", components)

    return app


async def serve(config: RegistryConfig, stop_event: Optional[asyncio.Event] = None) -> None:
    """
    Run the registry until stop_event is set (forever when None).

    Raises:
        StoreError: The store cannot be opened.
        WatcherError: The components directory cannot be watched.
        RegistryError: The HTTP listener cannot bind.
    """
    async with KeyValueStore(config.store.path, timeout=config.store.timeout) as store:
        engine = SyncEngine(
            store,
            config.manifests.directory,
            single_flight=config.sync.single_flight,
            staged=config.sync.staged,
        )

        watcher: Optional[ChangeWatcher] = None
        runner: Optional[web.AppRunner] = None

        try:
            try:
                await engine.reload()
            except ManifestError as e:
                # Keep serving; the next directory change retries the load.
                logger.error("initial_load_failed", error=e.to_dict())

            if config.watcher.enabled:
                watcher = ChangeWatcher(engine, config.manifests.directory, recursive=config.watcher.recursive)
                watcher.start()

            with error_context("server", "listen", host=config.server.host, port=config.server.port):
                runner = web.AppRunner(create_app(engine, config.server.index_path))
                await runner.setup()
                site = web.TCPSite(runner, config.server.host, config.server.port)
                await site.start()

            logger.info(
                "server_started",
                host=config.server.host,
                port=config.server.port,
                components_dir=str(config.manifests.directory),
                version=engine.version,
            )

            await (stop_event or asyncio.Event()).wait()
        finally:
            if runner is not None:
                await runner.cleanup()
            if watcher is not None:
                watcher.stop()

    logger.info("server_stopped")


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.host:
        overrides.setdefault("server", {})["host"] = args.host
    if args.port:
        overrides.setdefault("server", {})["port"] = args.port
    if args.components_dir:
        overrides["manifests"] = {"directory": args.components_dir}
    if args.db_path:
        overrides["store"] = {"path": args.db_path}
    if args.debug:
        overrides["debug"] = True
        overrides["logging"] = {"level": "DEBUG"}
    return overrides


async def _run(args: argparse.Namespace) -> None:
    config = await load_config(
        config_paths=[args.config] if args.config else None,
        extra_config=_cli_overrides(args),
    )
    setup_logging(
        config.app_name,
        log_level=config.logging.level,
        log_dir=config.logging.directory,
        enable_json=config.logging.format == "json",
    )
    await serve(config)


def main(argv=None):
    """Run the component registry server."""
    parser = argparse.ArgumentParser(description="Component Registry server")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--config", type=str, help="Config file path (.toml, .yaml or .json)")
    parser.add_argument("--host", type=str, help="Host to bind")
    parser.add_argument("--port", type=int, help="Port to bind")
    parser.add_argument("--components-dir", type=str, help="Directory of component manifests")
    parser.add_argument("--db-path", type=str, help="SQLite store path")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    if args.version:
        print(f"Component Registry v{__version__}")
        return

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("server_stopped_by_user")
    except RegistryError as e:
        print(f"Component Registry error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
