"""Command-line interface for inspecting and exercising detector dispatch."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from .config import Settings
from .dispatcher import Dispatcher
from .errors import ConfigurationError
from .logging import setup_logging

EXIT_OK = 0
EXIT_DISPATCH_ERROR = 1
EXIT_USAGE = 2


def _load_settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings(args.config)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid config: {exc}") from exc
    setup_logging(args.log_level or settings.log_level, settings.log_format)
    return settings


def _read_request(args: argparse.Namespace) -> Any:
    if args.request_file:
        raw = Path(args.request_file).read_text(encoding="utf-8")
    else:
        raw = args.request
    return json.loads(raw)


def _cmd_list(args: argparse.Namespace) -> int:
    """Print the configured detectors and their endpoints."""

    dispatcher = Dispatcher.from_settings(_load_settings(args))
    try:
        detectors = {d: dispatcher.endpoint_for(d) for d in dispatcher.identifiers()}
    finally:
        asyncio.run(dispatcher.aclose())
    print(json.dumps({"detectors": detectors}))
    return EXIT_OK


async def _classify(settings: Settings, detector_id: str, request: Any) -> int:
    async with Dispatcher.from_settings(settings) as dispatcher:
        result = await dispatcher.classify(detector_id, request)
    print(result.model_dump_json(exclude_none=True))
    return EXIT_OK if result.ok else EXIT_DISPATCH_ERROR


def _cmd_classify(args: argparse.Namespace) -> int:
    """Send one request to a detector and print the normalized result."""

    try:
        request = _read_request(args)
    except (OSError, ValueError) as exc:
        print(json.dumps({"ok": False, "error": f"invalid request: {exc}"}))
        return EXIT_USAGE
    settings = _load_settings(args)
    return asyncio.run(_classify(settings, args.detector, request))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="detector-dispatch", description="Detector dispatch utilities"
    )
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List configured detectors")
    p_list.set_defaults(func=_cmd_list)

    p_classify = sub.add_parser("classify", help="Dispatch one classification request")
    p_classify.add_argument("--detector", required=True, help="Detector identifier")
    source = p_classify.add_mutually_exclusive_group(required=True)
    source.add_argument("--request", help="Request document as inline JSON")
    source.add_argument("--request-file", help="Path to a JSON request document")
    p_classify.set_defaults(func=_cmd_classify)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except ConfigurationError as exc:
        print(json.dumps({"ok": False, "error": exc.message}))
        return EXIT_USAGE


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
