#!/usr/bin/env python3
"""
Frameconsole - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Builds the session store
3. Serves the console endpoints

All console logic is in the modules.
"""

import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from frameconsole.logging_config import get_logging_config
from frameconsole.modules.api import RequestPermissions, create_console_router
from frameconsole.modules.config import ConfigModule, get_config
from frameconsole.modules.storage import SessionStore, StorageModule

logger = logging.getLogger(__name__)


def build_store(config: ConfigModule, redis_client=None) -> SessionStore:
    """Create the session store described by configuration."""
    return SessionStore(
        redis_client,
        use_distributed_storage=config.get("use_distributed_storage"),
        ttl=config.get("session_ttl"),
        operation_timeout=config.get("redis_timeout", 5.0),
        lookup_policy=config.get("lookup_policy"),
        last_evaluation_variable=config.get("last_evaluation_variable"),
    )


def create_app(
    config: Optional[ConfigModule] = None,
    store: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Create the console application.

    Args:
        config: Configuration (the environment singleton if omitted)
        store: Prebuilt store; when omitted one is built from config and
            connected to Redis at startup if distributed storage is enabled
    """
    config = config or get_config()
    storage = StorageModule(config.get("redis_url"), timeout=config.get("redis_timeout", 5.0))
    store = store or build_store(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting console service...")
        if store.use_distributed_storage and store.redis is None:
            store.redis = await storage.connect()
        logger.info(
            f"Console sessions stored {'in Redis' if store.distributed else 'in memory'} "
            f"(lookup policy: {store.lookup_policy})"
        )

        yield

        logger.info("Shutting down console service...")
        await storage.disconnect()

    app = FastAPI(
        title="Frameconsole",
        description="Interactive consoles bound to points of program execution",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    permissions = RequestPermissions(config.get("allowed_networks"))
    app.include_router(create_console_router(store, permissions))
    return app


def main():
    config = get_config()
    log_config.dictConfig(get_logging_config(config.get("log_level")))
    uvicorn.run(create_app(config), host="127.0.0.1", port=8080, log_config=None)


if __name__ == "__main__":
    main()
