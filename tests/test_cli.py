"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from inbox_sage.cli import build_parser, execute, load_message
from inbox_sage.core.config import AnalysisSettings, AppSettings, LlmSettings

MESSAGE = {
    "id": "msg-cli",
    "subject": "Release",
    "from": "lead@example.com",
    "body": "URGENT: Fix the critical bug immediately.",
}

RAW_EMAIL = (
    b"Message-ID: <cli@example.com>\r\n"
    b"From: Lead <lead@example.com>\r\n"
    b"To: you@example.com\r\n"
    b"Subject: Release\r\n"
    b"Content-Type: text/plain; charset=utf-8\r\n"
    b"\r\n"
    b"Please review the release notes by 2024-12-20.\r\n"
)


def _settings(**analysis: object) -> AppSettings:
    return AppSettings(
        llm=LlmSettings(enabled=False),
        analysis=AnalysisSettings(**analysis),  # type: ignore[arg-type]
    )


def test_parser_defaults_to_info() -> None:
    args = build_parser().parse_args([])

    assert args.command == "info"
    assert args.path is None
    assert args.force is False


def test_info_reports_configuration(capsys: pytest.CaptureFixture[str]) -> None:
    args = build_parser().parse_args(["info"])

    assert execute(args, _settings()) == 0

    output = capsys.readouterr().out
    assert "Inbox Sage is ready." in output
    assert "Local model: disabled" in output


def test_analyze_json_message(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "message.json"
    path.write_text(json.dumps(MESSAGE), encoding="utf-8")
    args = build_parser().parse_args(["analyze", str(path), "--force"])

    assert execute(args, _settings()) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["messageId"] == "msg-cli"
    assert payload["tier"] == "heuristic"
    assert payload["priority"] == "high"


def test_extract_eml_message(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "message.eml"
    path.write_bytes(RAW_EMAIL)
    args = build_parser().parse_args(["extract", str(path)])

    assert execute(args, _settings()) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["actionItems"][0]["text"] == "review the release notes"
    assert payload["actionItems"][0]["dueDate"].startswith("2024-12-20")


def test_load_message_reads_both_formats(tmp_path: Path) -> None:
    json_path = tmp_path / "message.json"
    json_path.write_text(json.dumps(MESSAGE), encoding="utf-8")
    eml_path = tmp_path / "message.eml"
    eml_path.write_bytes(RAW_EMAIL)

    assert load_message(json_path).sender == "lead@example.com"
    assert load_message(eml_path).id == "<cli@example.com>"


def test_missing_or_unreadable_path(tmp_path: Path) -> None:
    parser = build_parser()
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert execute(parser.parse_args(["analyze"]), _settings()) == 2
    assert execute(parser.parse_args(["analyze", str(broken)]), _settings()) == 2
    assert execute(parser.parse_args(["extract", str(tmp_path / "nope.eml")]), _settings()) == 2


def test_disabled_processing_exits_with_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "message.json"
    path.write_text(json.dumps(MESSAGE), encoding="utf-8")
    args = build_parser().parse_args(["analyze", str(path)])

    assert execute(args, _settings(enable_local_processing=False)) == 1
    assert "Local processing is disabled" in capsys.readouterr().err
