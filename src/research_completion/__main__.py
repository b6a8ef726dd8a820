"""Command line entry point: ``python -m research_completion``.

Subcommands:

- ``decode [FILE]``: resilient JSON decode, pretty-printed
- ``sanitize [FILE]``: light-weight response cleanup
- ``issues [FILE]``: first detected completion issue, or ``none``
- ``complete PROMPT``: run the completion controller against Ollama
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any, TextIO

from pydantic import ValidationError

from research_completion.adapters import OllamaGenerator
from research_completion.completion import (
    CompletionController,
    detect_response_issues,
    sanitize_response,
)
from research_completion.config import OllamaSettings, load_settings
from research_completion.decoding import decode_resilient_json
from research_completion.exceptions import (
    ResearchCompletionError,
    ResilientJSONDecodeError,
)
from research_completion.telemetry import InMemoryReporter, TelemetryContext


def _read_input(path: Path | None, stdin: TextIO) -> str:
    if path is None:
        return stdin.read()
    return path.read_text(encoding="utf-8")


def _cmd_decode(args: argparse.Namespace, out: TextIO) -> int:
    text = _read_input(args.file, sys.stdin)
    try:
        data = decode_resilient_json(text)
    except ResilientJSONDecodeError as e:
        print(f"error: {e.msg}", file=sys.stderr)
        return 1
    print(json.dumps(data, indent=2, ensure_ascii=False), file=out)
    return 0


def _cmd_sanitize(args: argparse.Namespace, out: TextIO) -> int:
    print(sanitize_response(_read_input(args.file, sys.stdin)), file=out)
    return 0


def _cmd_issues(args: argparse.Namespace, out: TextIO) -> int:
    issue = detect_response_issues(_read_input(args.file, sys.stdin))
    print(issue.reason.value if issue.reason else "none", file=out)
    return 0


async def _complete(args: argparse.Namespace) -> tuple[str, InMemoryReporter]:
    overrides: dict[str, Any] = {}
    if args.max_retries is not None:
        overrides["max_retries"] = args.max_retries
    if args.timeout_ms is not None:
        overrides["timeout_ms"] = args.timeout_ms
    settings = load_settings(args.env_file, **overrides)

    ollama_overrides: dict[str, Any] = {}
    if args.model:
        ollama_overrides["model"] = args.model
    if args.base_url:
        ollama_overrides["base_url"] = args.base_url

    reporter = InMemoryReporter()
    controller = CompletionController(settings, telemetry=TelemetryContext(reporter))
    async with OllamaGenerator(OllamaSettings(**ollama_overrides)) as generate:
        text = await controller.complete(generate, args.prompt)
    return text, reporter


def _cmd_complete(args: argparse.Namespace, out: TextIO) -> int:
    try:
        text, reporter = asyncio.run(_complete(args))
    except (ResearchCompletionError, ValidationError, FileNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.decode:
        try:
            data = decode_resilient_json(text)
        except ResilientJSONDecodeError as e:
            print(f"error: {e.msg}", file=sys.stderr)
            return 1
        print(json.dumps(data, indent=2, ensure_ascii=False), file=out)
    else:
        print(text, file=out)

    if reporter.timings or reporter.metrics:
        print(reporter.get_report(), file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="research_completion",
        description="Complete and decode responses from small local models",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    decode = sub.add_parser("decode", help="Decode malformed JSON output")
    decode.add_argument("file", type=Path, nargs="?", help="Input file (stdin if omitted)")
    decode.set_defaults(handler=_cmd_decode)

    sanitize = sub.add_parser("sanitize", help="Clean up a raw response")
    sanitize.add_argument("file", type=Path, nargs="?", help="Input file (stdin if omitted)")
    sanitize.set_defaults(handler=_cmd_sanitize)

    issues = sub.add_parser("issues", help="Report the first completion issue")
    issues.add_argument("file", type=Path, nargs="?", help="Input file (stdin if omitted)")
    issues.set_defaults(handler=_cmd_issues)

    complete = sub.add_parser("complete", help="Complete a prompt with Ollama")
    complete.add_argument("prompt", help="Prompt text")
    complete.add_argument("--model", default=None, help="Ollama model tag")
    complete.add_argument("--base-url", default=None, help="Ollama base URL")
    complete.add_argument("--max-retries", type=int, default=None)
    complete.add_argument("--timeout-ms", type=int, default=None)
    complete.add_argument(
        "--env-file", type=Path, default=None, help="Optional .env file to load"
    )
    complete.add_argument(
        "--decode", action="store_true", help="Decode the completed text as JSON"
    )
    complete.set_defaults(handler=_cmd_complete)
    return parser


def main(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.handler(args, out or sys.stdout)


if __name__ == "__main__":
    sys.exit(main())
