"""Command-line entry point for Inbox Sage."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from inbox_sage.commands import AnalyzeMessage, ExtractActions
from inbox_sage.core import (
    AppSettings,
    LocalProcessingDisabled,
    configure_logging,
    load_app_settings,
)
from inbox_sage.core.models import EmailMessage
from inbox_sage.ingestion import EmailParser
from inbox_sage.serialization import (
    MessagePayload,
    serialize_analysis,
    serialize_extraction,
)
from inbox_sage.services import AssistantServices, build_services


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Inbox Sage email analysis")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "analyze", "extract"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=None,
        help="Message to process: an .eml file or a JSON message document.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore any cached analysis for the message.",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the exit code."""
    command = args.command
    if command == "info":
        _print_info(settings)
        return 0
    if args.path is None:
        print(f"The {command} command needs a message file.", file=sys.stderr)
        return 2
    try:
        message = load_message(args.path)
    except (OSError, ValidationError, ValueError) as exc:
        print(f"Could not read {args.path}: {exc}", file=sys.stderr)
        return 2

    services = build_services(settings)
    if command == "analyze":
        try:
            output = asyncio.run(_analyze(services, message, force=args.force))
        except LocalProcessingDisabled as exc:
            print(str(exc), file=sys.stderr)
            return 1
    else:
        output = asyncio.run(_extract(services, message))
    print(json.dumps(output, indent=2))
    return 0


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def load_message(path: Path) -> EmailMessage:
    """Read ``path`` as RFC822 when it ends in ``.eml``, JSON otherwise."""
    if path.suffix.lower() == ".eml":
        return EmailParser().parse(path.read_bytes())
    return MessagePayload.model_validate_json(path.read_text(encoding="utf-8")).to_model()


def _print_info(settings: AppSettings) -> None:
    analysis = settings.analysis
    print("Inbox Sage is ready.")
    print(f"Local model: {settings.llm.model if settings.llm.enabled else 'disabled'}")
    print(f"Cloud providers: {len(settings.cloud.providers)}")
    print(f"Local processing: {'on' if analysis.enable_local_processing else 'off'}")
    print(f"Cloud fallback: {'on' if analysis.enable_cloud_fallback else 'off'}")
    print(f"Caching: {'on' if analysis.enable_caching else 'off'}")


async def _analyze(
    services: AssistantServices, message: EmailMessage, *, force: bool
) -> dict[str, Any]:
    result = await services.dispatcher.dispatch(AnalyzeMessage(message, force))
    return serialize_analysis(result)


async def _extract(services: AssistantServices, message: EmailMessage) -> dict[str, Any]:
    result = await services.dispatcher.dispatch(ExtractActions(message))
    return serialize_extraction(result)


if __name__ == "__main__":
    main()
