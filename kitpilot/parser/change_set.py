"""
Change-Set Parser
=================
Turns a model reply into an ordered list of whole-file edits.

Expected reply shape:
    [{"path": "relative/path", "content": "full file content"}, ...]

Tolerated wrappers:
    - a fenced code block (```json ... ``` or bare ```)
    - prose before the array
    - prose after the array (kept as the human-readable explanation)

Extraction strategy:
    1. Strip a fenced-block wrapper if present.
    2. Take the substring from the first "[" to the last "]".
    3. If that does not decode (e.g. the trailing prose itself contains "]"),
       decode the first complete JSON value starting at the first "[".

An empty array is valid and means "no file changes". Every element is
validated into a ChangeEntry; anything without string ``path`` and
``content`` fields is rejected as a malformed response.
"""
import json
import logging
import re
from typing import Any, List, Tuple

from pydantic import ValidationError

from kitpilot.core.exceptions import MalformedResponseError
from kitpilot.models.change_entry import ChangeEntry

logger = logging.getLogger(__name__)

EXPECTED_SHAPE = '[{ "path": "...", "content": "..." }]'
MALFORMED_MESSAGE = (
    "Could not parse AI response as file changes. "
    f"Expected JSON array format: {EXPECTED_SHAPE}"
)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
_LEADING_FENCE_RE = re.compile(r"^```\s*")
_DECODER = json.JSONDecoder()


def _decode_array(text: str) -> Tuple[Any, int]:
    """Decode the JSON value holding the change array; return it and where it ends."""
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        try:
            return json.loads(text[start:end + 1]), end + 1
        except json.JSONDecodeError:
            pass
        try:
            return _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            pass
    return json.loads(text), len(text)


def parse_reply(raw: str) -> Tuple[List[ChangeEntry], str]:
    """
    Parse a model reply into file changes plus trailing explanation text.

    Raises
    ------
    MalformedResponseError
        If no JSON array of {path, content} objects can be recovered.
    """
    text = (raw or "").strip()
    after_fence = ""

    fence = _FENCE_RE.search(text)
    if fence:
        after_fence = text[fence.end():]
        text = fence.group(1).strip()

    try:
        data, stop = _decode_array(text)
    except json.JSONDecodeError as e:
        logger.debug("Change-set decode failed: %s", e)
        raise MalformedResponseError(MALFORMED_MESSAGE) from e

    if not isinstance(data, list):
        raise MalformedResponseError(MALFORMED_MESSAGE)

    entries: List[ChangeEntry] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedResponseError(f"{MALFORMED_MESSAGE} (item {index} is not an object)")
        try:
            entries.append(ChangeEntry(path=item.get("path"), content=item.get("content")))
        except ValidationError as e:
            raise MalformedResponseError(
                f"{MALFORMED_MESSAGE} (item {index} needs string 'path' and 'content')"
            ) from e

    explanation = (text[stop:] + after_fence).strip()
    explanation = _LEADING_FENCE_RE.sub("", explanation).strip()
    return entries, explanation


def parse_changes(raw: str) -> List[ChangeEntry]:
    """Parse a model reply into file changes, discarding any explanation."""
    entries, _ = parse_reply(raw)
    return entries


def extract_explanation(raw: str) -> str:
    """Return the prose that follows the change array, or "" if there is none."""
    try:
        _, explanation = parse_reply(raw)
    except MalformedResponseError:
        return ""
    return explanation
