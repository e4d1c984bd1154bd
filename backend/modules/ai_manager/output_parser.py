"""
Provider output parsing.

Providers are prompted to answer with a single JSON object
{"description": "..."}; the router reports failures as
{"error": true, "description": "..."}. Nothing enforces either shape, so
finished output is classified into a tagged result and partial output is
reduced to the text a reader should see while it streams.
"""

import json
import re
from enum import StrEnum

from pydantic import BaseModel

DEFAULT_PROVIDER_ERROR = "Something went wrong while calling the AI provider."

_PARTIAL_DESCRIPTION = re.compile(r'"description"\s*:\s*"((?:[^"\\]|\\.)*)')
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\", "/": "/"}


class OutputKind(StrEnum):
    """Tag of a parsed provider output."""
    OK = "ok"
    PROVIDER_ERROR = "provider_error"
    MALFORMED = "malformed"


class ParsedOutput(BaseModel):
    """Tagged provider output: extracted text plus how it was obtained."""

    kind: OutputKind
    text: str

    @property
    def is_error(self) -> bool:
        return self.kind == OutputKind.PROVIDER_ERROR


def _load_object(text: str):
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, dict) else None


def parse_provider_output(raw: str) -> ParsedOutput:
    """
    Classify a finished provider output.

    - {"description": str} -> OK with the description
    - {"error": true, ...} -> PROVIDER_ERROR with the description
    - anything else -> MALFORMED carrying the raw text verbatim
    """
    parsed = _load_object((raw or "").strip())

    if parsed is not None:
        if parsed.get("error") is True:
            description = parsed.get("description")
            if not isinstance(description, str) or not description:
                description = DEFAULT_PROVIDER_ERROR
            return ParsedOutput(kind=OutputKind.PROVIDER_ERROR, text=description)

        description = parsed.get("description")
        if isinstance(description, str):
            return ParsedOutput(kind=OutputKind.OK, text=description)

    return ParsedOutput(kind=OutputKind.MALFORMED, text=raw or "")


def unescape_json_fragment(fragment: str) -> str:
    """Undo JSON string escapes in a possibly truncated fragment."""
    return _ESCAPE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), fragment)


def extract_display_text(raw: str, streaming: bool = False) -> str:
    """
    Text to show for an assistant message.

    While streaming, a JSON prefix such as '{"description": "Hel' yields
    'Hel'; raw JSON syntax is never shown. Non-JSON output is shown as is.
    """
    if not raw or not raw.strip():
        return raw or ""

    trimmed = raw.strip()

    if trimmed.startswith("{") and trimmed.endswith("}"):
        parsed = _load_object(trimmed)
        if parsed is not None:
            description = parsed.get("description")
            return description if isinstance(description, str) else raw
        if not streaming:
            return raw
        # Closing brace inside an unfinished string; fall through to prefix extraction

    if streaming and trimmed.startswith("{"):
        match = _PARTIAL_DESCRIPTION.search(raw)
        if match:
            return unescape_json_fragment(match.group(1))
        return ""

    return raw
