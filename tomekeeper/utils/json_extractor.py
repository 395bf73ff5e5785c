"""
Robust JSON extraction for structured-extraction replies.

The model is asked for bare JSON but sometimes wraps it in a fenced code
block or adds prose around it. Parsing tries, in order: the whole reply,
the last ``json`` fenced block, then the earliest balanced ``{...}`` block
that parses.
"""
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def extract_json_object(text: str) -> Optional[dict]:
    """
    Return the JSON object contained in *text*, or ``None`` when no
    strategy yields a dict.
    """
    if not text or not text.strip():
        return None

    for strategy, raw in (
        ("whole", text.strip()),
        ("code_block", _extract_from_code_block(text)),
        ("brace_scan", _extract_by_brace_scan(text)),
    ):
        if raw is None:
            continue
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
        logger.debug("json_extract_skip | strategy=%s | type=%s", strategy, type(parsed).__name__)

    logger.warning(
        "json_extract_failed | strategy=none_matched | text_len=%d | head=%.200s",
        len(text), text[:200],
    )
    return None


# ---------------------------------------------------------------------------
# Extraction strategies
# ---------------------------------------------------------------------------

def _extract_from_code_block(text: str) -> Optional[str]:
    """
    Extract JSON from the **last** ``\\`\\`\\`json ... \\`\\`\\``` fenced code block.
    """
    marker = "```json"
    idx = text.rfind(marker)
    if idx == -1:
        return None

    start = idx + len(marker)
    end = text.find("```", start)
    if end == -1:
        # Unclosed code block: take everything after the marker.
        candidate = text[start:].strip()
    else:
        candidate = text[start:end].strip()

    return candidate or None


def _extract_by_brace_scan(text: str) -> Optional[str]:
    """
    Find the outermost balanced ``{…}`` block that parses as valid JSON,
    preferring the one that starts earliest.
    """
    search_from = 0

    while True:
        open_idx = text.find("{", search_from)
        if open_idx == -1:
            return None

        close_idx = _find_matching_brace(text, open_idx)
        if close_idx is not None:
            candidate = text[open_idx : close_idx + 1]
            try:
                json.loads(candidate)
                return candidate
            except json.JSONDecodeError:
                pass

        search_from = open_idx + 1


def _find_matching_brace(text: str, start: int) -> Optional[int]:
    """
    Return the index of the ``}`` that balances the ``{`` at *start*,
    respecting JSON string literals so embedded braces don't confuse the count.
    """
    depth = 0
    in_string = False
    escape = False
    length = len(text)

    for i in range(start, length):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i

    return None
