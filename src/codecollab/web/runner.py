"""Uvicorn server runner."""

import copy
from typing import Any

import structlog
import uvicorn
from uvicorn.config import LOGGING_CONFIG

from codecollab.app import App
from codecollab.config import Config
from codecollab.web.server import create_fastapi_app

logger = structlog.get_logger(__name__)


def uvicorn_log_config(config: Config) -> dict[str, Any]:
    """Uvicorn logging config with compact formats; access lines carry the client address."""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - %(client_addr)s "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"
    level = "DEBUG" if config.debug else "INFO"
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        log_config["loggers"][name]["level"] = level
    return log_config


def run_server(app: App, config: Config) -> None:
    """Serve the API until interrupted."""
    fastapi_app = create_fastapi_app(app, config)
    logger.info(
        "server_starting",
        host=config.host,
        port=config.port,
        store_backend=config.store_backend,
        pusher_cluster=config.pusher_cluster,
    )
    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=uvicorn_log_config(config),
        access_log=config.access_log,
        proxy_headers=True,
        forwarded_allow_ips=config.forwarded_allow_ips,
    )
