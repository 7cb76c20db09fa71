"""
YeahBuddy - main entry point.

Runs the API server, or checks a directory seed file from the command line.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

import uvicorn

from yeahbuddy.api.app import create_app
from yeahbuddy.config import get_settings


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="yeahbuddy", description="YeahBuddy review service")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=settings.api_host)
    serve.add_argument("--port", type=int, default=settings.api_port)
    serve.add_argument("--seed", default=None, help="Directory seed file (YAML)")

    check = sub.add_parser("check-seed", help="Load a seed file into memory and report counts")
    check.add_argument("path")

    return parser


async def check_seed(path: str) -> dict[str, int]:
    from yeahbuddy.config_loader import load_directory
    from yeahbuddy.storage import create_local_storage

    storage = create_local_storage()
    return await load_directory(storage.directory, path)


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    args = build_parser().parse_args(argv)

    if args.command == "check-seed":
        counts = asyncio.run(check_seed(args.path))
        for kind, count in counts.items():
            print(f"  {kind}: {count}")
        return

    if getattr(args, "seed", None):
        settings = settings.model_copy(update={"directory_seed_file": args.seed})

    host = getattr(args, "host", settings.api_host)
    port = getattr(args, "port", settings.api_port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
