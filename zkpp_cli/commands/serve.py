"""
CLI Serve Command

Run the oracle HTTP API under uvicorn.

Usage:
    zkpp serve [--host 0.0.0.0] [--port 3001] [--force-rebuild]
"""

from __future__ import annotations

import logging
from argparse import Namespace
from dataclasses import replace

from core.config.runtime import RuntimeConfig


logger = logging.getLogger(__name__)


def serve_cmd(args: Namespace) -> int:
    import uvicorn

    from api.app import create_app

    config: RuntimeConfig = getattr(args, "runtime_config", None) or RuntimeConfig()
    host = args.host or config.server.host
    port = args.port or config.server.port
    if args.force_rebuild:
        config = replace(config, oracle=replace(config.oracle, force_rebuild=True))

    logger.info(f"Starting oracle API on {host}:{port}")
    uvicorn.run(create_app(config=config), host=host, port=port, log_level=config.log_level.lower())
    return 0
