"""
INFERNUM CLIENT

HTTP client for an infernum server, plus the `infernum-client` CLI.

USAGE:
    # Schedule an inference
    infernum-client inference -i /data/street.jpg -p "describe the scene"

    # Fetch the next result
    infernum-client --host gpu-box --port 3000 results

FAILURE SEMANTICS:
- Non-200 responses are returned as decoded JSON (the body carries the reason)
- Network failures raise aiohttp.ClientError, timeouts asyncio.TimeoutError;
  the CLI reports both and exits 1
- No retries
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from .config import ClientConfig


class InfernumClient:
    """
    Async client for the infernum HTTP API.

    Each call opens its own session, the server keeps no per-client state.
    """

    def __init__(
        self,
        host: str = ClientConfig.host,
        port: int = ClientConfig.port,
        timeout_seconds: float = ClientConfig.timeout_seconds,
    ):
        self.base_url = f"http://{host}:{port}"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def run_inference(self, image_path: str, prompt: str) -> Dict[str, Any]:
        """
        Schedule an inference on the server.

        Calls: POST /inference

        Args:
            image_path: Image path as seen by the server
            prompt: Prompt for the model

        Returns:
            Decoded JSON body, e.g. {"status": "scheduled", "request_id": 0}
        """
        url = f"{self.base_url}/inference"
        payload = {"image_path": str(image_path), "prompt": prompt}

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(url, json=payload) as response:
                if response.status != 200:
                    logger.warning(f"POST /inference returned status {response.status}")
                return await response.json()

    async def fetch_results(self) -> Dict[str, Any]:
        """
        Fetch the next completed result.

        Calls: GET /results

        Returns:
            Decoded JSON body; "status" is "success", "error", "idle" or "processing"
        """
        url = f"{self.base_url}/results"

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.warning(f"GET /results returned status {response.status}")
                return await response.json()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="infernum-client",
        description="Infernum client for running inference and checking results",
    )
    parser.add_argument("-H", "--host", default=ClientConfig.host, help="the host to connect to")
    parser.add_argument("-p", "--port", type=int, default=ClientConfig.port, help="the port to connect to")
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        default=ClientConfig.timeout_seconds,
        help="total request timeout in seconds",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    inference = commands.add_parser("inference", help="Run inference with an image and prompt")
    inference.add_argument("-i", "--image-path", required=True, help="the path to the image")
    inference.add_argument("-p", "--prompt", required=True, help="the prompt to use")

    commands.add_parser("results", help="Check inference results")

    return parser


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    client = InfernumClient(host=args.host, port=args.port, timeout_seconds=args.timeout)
    if args.command == "inference":
        return await client.run_inference(args.image_path, args.prompt)
    return await client.fetch_results()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        result = asyncio.run(_run(args))
    except asyncio.TimeoutError:
        print(
            f"ERROR: Request to {args.host}:{args.port} timed out after {args.timeout}s",
            file=sys.stderr,
        )
        return 1
    except aiohttp.ClientError as e:
        print(f"ERROR: Request to {args.host}:{args.port} failed: {e}", file=sys.stderr)
        return 1

    print(f"Result: {json.dumps(result, indent=2)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
