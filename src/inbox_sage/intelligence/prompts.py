"""Prompt templates for LLM-driven analysis."""

from __future__ import annotations

from textwrap import dedent

from inbox_sage.core.config import AnalysisSettings
from inbox_sage.core.interfaces import AnalysisType
from inbox_sage.core.models import EmailMessage

_FOCUS = {
    "summary": "Focus on the summary; other lists may be empty.",
    "action_items": "Focus on action items and the dates they depend on.",
    "suggested_replies": "Focus on two or three suggested replies.",
    "grammar": "Focus on grammar issues in the body.",
    "sentiment": "Focus on sentiment and priority.",
    "full": "Fill in every field.",
}


def build_analysis_prompt(
    message: EmailMessage,
    preferences: AnalysisSettings,
    analysis_type: AnalysisType = "full",
) -> str:
    """Compose a JSON-only analysis prompt for ``message``."""
    to_line = ", ".join(message.to) if message.to else "(none)"
    subject = message.subject or "(no subject)"
    sender = message.sender or "(unknown sender)"

    prompt = f"""
    You are an email assistant. Analyse the email below and respond strictly
    with JSON using this schema:
    {{
      "summary": string,
      "action_items": [{{"text": string, "priority": "high|medium|low",
                         "category": string, "due_date": "YYYY-MM-DD"|null}}],
      "suggested_replies": [{{"text": string, "tone": "formal|casual|concise",
                              "length": "short|medium|long", "confidence": number}}],
      "grammar_issues": [{{"text": string, "suggestion": string,
                           "severity": "error|warning|info",
                           "start": number, "end": number}}],
      "sentiment": "positive|negative|neutral",
      "priority": "high|medium|low",
      "categories": [string, ...],
      "extracted_dates": [{{"text": string, "date": "YYYY-MM-DD",
                            "type": "deadline|meeting|event|general",
                            "confidence": number}}]
    }}

    Preferences:
    - Reply tone: {preferences.preferred_tone}
    - Summary length: at most {preferences.max_summary_length} characters
    - Language: {preferences.preferred_language}

    {_FOCUS[analysis_type]}
    Do not include any additional keys or prose outside the JSON object.

    Subject: {subject}
    From: {sender}
    To: {to_line}

    Email body:
    {message.body}
    """

    return dedent(prompt).strip()


def build_action_prompt(message: EmailMessage) -> str:
    """Compose a prompt asking only for action items and dates."""
    subject = message.subject or "(no subject)"

    prompt = f"""
    Extract the tasks the recipient of this email must perform. Return ONLY
    JSON matching this schema:
    {{
      "action_items": [{{"text": string, "priority": "high|medium|low",
                         "category": string, "due_date": "YYYY-MM-DD"|null}}],
      "extracted_dates": [{{"text": string, "date": "YYYY-MM-DD",
                            "type": "deadline|meeting|event|general",
                            "confidence": number}}]
    }}

    Keep each action short and start it with a verb. Use empty lists when
    there is nothing to report.

    Subject: {subject}

    Email body:
    {message.body}
    """

    return dedent(prompt).strip()


__all__ = ["build_action_prompt", "build_analysis_prompt"]
