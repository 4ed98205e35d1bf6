"""
INFERNUM SERVER ENTRY POINT

USAGE:
    infernum-serve --host 0.0.0.0 --port 3000
    infernum-serve --config infernum.yaml

Starts an InferenceEngine around the example ImageStatsModel and serves
it with uvicorn until interrupted. The engine is stopped (in-flight run
completed, worker joined) when the server shuts down.
"""

import argparse
import sys
from typing import List, Optional

import uvicorn
from loguru import logger

from ..config import configure_logging, load_config
from ..engine import InferenceEngine
from ..example_model import ImageStatsModel
from .app import create_app


def _uvicorn_level(level: str) -> str:
    # uvicorn has no SUCCESS level
    return "info" if level == "SUCCESS" else level.lower()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="infernum-serve",
        description="Infernum is a tool for running inference on images.",
    )
    parser.add_argument("-H", "--host", help="the host to run the server on")
    parser.add_argument("-p", "--port", type=int, help="the port to run the server on")
    parser.add_argument("-c", "--config", help="path to a YAML configuration file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.log_level)

    host = args.host or config.host
    port = args.port or config.port

    engine = InferenceEngine(
        ImageStatsModel(delay_seconds=config.model_delay_seconds),
        name=config.engine_name,
    )
    app = create_app(engine, sample_len=config.sample_len)

    logger.info("Starting the server")
    logger.info(f"Listening on: {host}:{port}")
    logger.info("Press Ctrl+C to stop the server")

    try:
        uvicorn.run(app, host=host, port=port, log_level=_uvicorn_level(config.log_level))
    finally:
        engine.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
