import logging, coloredlogs
import os
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from kvdash.config import load_config, build_registry
from kvdash.transport import build_clients
from kvdash.status import StatusPoller
from kvdash.dispatcher import OperationDispatcher
from app.http_api import mount_dashboard_api


def create_app(config_path: Optional[str] = None) -> FastAPI:
    config_path = config_path or os.getenv("CONFIG_PATH")
    if not config_path:
        raise ValueError(
            "CONFIG_PATH environment variable must "
            "be set (e.g., CONFIG_PATH=configs/cluster.yaml)"
        )
    cfg = load_config(config_path)

    level = cfg.get("log_level", "INFO")
    logging.basicConfig(level=level)
    coloredlogs.install(
        level=level, fmt="%(asctime)s  | %(name)s | %(levelname)s # %(message)s"
    )

    # Disable debug logs for httpx and httpcore
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    registry = build_registry(cfg)
    clients = build_clients(cfg, registry)
    poller = StatusPoller(cfg, registry, clients)
    dispatcher = OperationDispatcher(cfg, clients)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await poller.start()
        yield
        await poller.stop()
        for client in clients:
            await client.aclose()

    app = FastAPI(title=f"kvdash ({len(registry)} nodes)", lifespan=lifespan)
    app.state.poller = poller
    app.state.dispatcher = dispatcher

    mount_dashboard_api(app, poller, dispatcher)
    return app


# Example:
# CONFIG_PATH=configs/cluster.yaml uvicorn main:create_app --factory --port 8080
