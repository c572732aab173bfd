"""Recover tool calls that a model wrote as text instead of a native call.

Some vendors, especially under load, echo the call they meant to make as prose:

    {"name": "search_products", "arguments": {"query": "shoes"}}
    /function=search_products>{"query": "shoes"}<function
    <function_call name="search_products">{"query": "shoes"}</function_call>

Each form is a RecoveryPattern tried in a fixed order. A match whose argument
blob is not valid JSON counts as no match, and the next pattern is tried.
"""

import json
import logging
import re
from enum import Enum
from typing import Any, Dict, Optional

from saai.models.provider import ToolCall

logger = logging.getLogger(__name__)

class RecoveryPattern(str, Enum):
    """Text forms of an embedded tool call, in priority order."""
    JSON_BRACE = "json_brace"
    SLASH_FUNCTION = "slash_function"
    XML_TAG = "xml_tag"

RECOVERY_ORDER = [
    RecoveryPattern.JSON_BRACE,
    RecoveryPattern.SLASH_FUNCTION,
    RecoveryPattern.XML_TAG,
]

_JSON_BRACE_HEAD_RE = re.compile(
    r'\{\s*"name"\s*:\s*"(?P<name>[A-Za-z_][\w\-]*)"\s*,\s*"(?:arguments|parameters)"\s*:\s*',
)
_CLOSING_BRACE_RE = re.compile(r'\s*\}')
_SLASH_FUNCTION_RE = re.compile(
    r'<?/?function=(?P<name>[A-Za-z_][\w\-]*)>\s*(?P<args>\{.*?\})\s*</?function>?',
    re.DOTALL,
)
_XML_TAG_RE = re.compile(
    r'<function_call\s+name=["\'](?P<name>[A-Za-z_][\w\-]*)["\']\s*>\s*(?P<args>\{.*?\})\s*</function_call>',
    re.DOTALL,
)

_TAGGED_REGEX = {
    RecoveryPattern.SLASH_FUNCTION: _SLASH_FUNCTION_RE,
    RecoveryPattern.XML_TAG: _XML_TAG_RE,
}

_decoder = json.JSONDecoder()

def _parse_arguments(blob: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(blob)
    except (json.JSONDecodeError, TypeError):
        return None
    return _as_arguments(parsed)

def _as_arguments(parsed: Any) -> Optional[Dict[str, Any]]:
    # "arguments" may itself be a JSON-encoded string
    if isinstance(parsed, str):
        try:
            parsed = json.loads(parsed)
        except json.JSONDecodeError:
            return None
    if not isinstance(parsed, dict):
        return None
    return parsed

def _match_json_brace(text: str) -> Optional[ToolCall]:
    # The argument object is decoded in place, so later braces in the reply do not leak into it
    for head in _JSON_BRACE_HEAD_RE.finditer(text):
        try:
            parsed, end = _decoder.raw_decode(text, head.end())
        except json.JSONDecodeError:
            continue
        if not _CLOSING_BRACE_RE.match(text, end):
            continue
        arguments = _as_arguments(parsed)
        if arguments is not None:
            return ToolCall(name=head.group("name"), arguments=arguments)
    return None

def match_pattern(pattern: RecoveryPattern, text: str) -> Optional[ToolCall]:
    """Try a single recovery pattern against text. The first match with parseable arguments wins."""
    if not text:
        return None

    if pattern == RecoveryPattern.JSON_BRACE:
        return _match_json_brace(text)

    for match in _TAGGED_REGEX[pattern].finditer(text):
        arguments = _parse_arguments(match.group("args"))
        if arguments is not None:
            return ToolCall(name=match.group("name"), arguments=arguments)
        logger.debug(f"Pattern {pattern.value} matched but arguments were not valid JSON")
    return None

def recover(text: str) -> Optional[ToolCall]:
    """
    Scan a plain-text reply for an embedded tool invocation.

    Returns:
        The first ToolCall recovered in pattern priority order, or None
    """
    if not text:
        return None

    for pattern in RECOVERY_ORDER:
        tool_call = match_pattern(pattern, text)
        if tool_call:
            logger.info(
                f"Recovered tool call '{tool_call.name}' from text",
                extra={"pattern": pattern.value, "tool_name": tool_call.name},
            )
            return tool_call
    return None
