"""
LLM Response parsing utilities.

Turns the complete text of a generation response into a ParseResult. Models
are asked for a strict JSON object but regularly wrap it in markdown fences,
leave raw newlines inside strings or stop mid-payload, so parsing runs an
ordered pipeline of tiers and the first tier that recovers files wins:

  1. parse_direct   - fence-stripped, brace-sliced json.loads
  2. parse_repaired - same slice with raw control characters escaped
  3. salvage_files  - character state machine over the "files" object
"""

import re
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from schemas.models import ExtractedConfig, ParseResult
from services.helpers.stream_parser import read_string_value, unescape_content

logger = logging.getLogger("generator.response_parser")


DEFAULT_MESSAGE = "Generated successfully"
SALVAGE_MESSAGE = "Extracted files from response"
DEFAULT_CATEGORY = "Other"
FILES_KEY = '"files"'

_FENCE_OPEN = re.compile(r"^```[^\s`{]*")
_FENCE_CLOSE = "```"
_MESSAGE_FIELD = re.compile(r'"message"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)

_STRING_REPAIRS = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

Tier = Callable[[str], Optional[ParseResult]]


class ScanMode(Enum):
    """Modes of the files-object salvage scanner."""

    NEUTRAL = "neutral"
    IN_KEY = "in_key"
    IN_VALUE = "in_value"


def _loads(text: str) -> Optional[Any]:
    """json.loads that reports failure as None."""
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        logger.debug(f"JSON parse failed: {str(e)[:100]}")
        return None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _find_unescaped(text: str, targets: str, start: int) -> int:
    """Index of the first character in ``targets`` not preceded by a backslash."""
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char in targets:
            return i
    return -1


class ResponseParser:
    """Parses generation responses into ParseResult objects."""

    # ------------------------------------------------------------------
    # Text preparation
    # ------------------------------------------------------------------

    @staticmethod
    def strip_code_fence(text: str) -> str:
        """Remove one leading ```lang marker and one trailing ``` marker."""
        cleaned = text.strip()
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        if cleaned.endswith(_FENCE_CLOSE):
            cleaned = cleaned[: -len(_FENCE_CLOSE)]
        return cleaned.strip()

    @staticmethod
    def slice_json_object(text: str) -> Optional[str]:
        """Slice from the first '{' to the last '}', or None if there is no such span."""
        cleaned = ResponseParser.strip_code_fence(text)
        first = cleaned.find("{")
        last = cleaned.rfind("}")
        if first == -1 or last == -1 or last <= first:
            return None
        return cleaned[first : last + 1]

    @staticmethod
    def repair_json_strings(json_text: str) -> str:
        """Escape raw newlines, carriage returns and tabs found inside strings."""
        result = []
        in_string = False
        escape_next = False

        for char in json_text:
            if escape_next:
                result.append(char)
                escape_next = False
                continue
            if char == "\\":
                escape_next = True
                result.append(char)
                continue
            if char == '"':
                in_string = not in_string
                result.append(char)
                continue
            if in_string:
                result.append(_STRING_REPAIRS.get(char, char))
            else:
                result.append(char)

        return "".join(result)

    # ------------------------------------------------------------------
    # Result building
    # ------------------------------------------------------------------

    @staticmethod
    def extract_config(files: Dict[str, str]) -> Optional[ExtractedConfig]:
        """Read extension settings out of a generated package.json, if any."""
        content = files.get("package.json")
        if not isinstance(content, str):
            return None

        pkg = _loads(content)
        if not isinstance(pkg, dict):
            logger.info("Could not parse package.json for config extraction")
            return None

        categories = pkg.get("categories")
        category = DEFAULT_CATEGORY
        if isinstance(categories, list) and categories and categories[0]:
            category = categories[0]

        activation_events = pkg.get("activationEvents")
        contributes = pkg.get("contributes")

        return ExtractedConfig(
            name=pkg.get("name"),
            display_name=pkg.get("displayName"),
            description=pkg.get("description"),
            publisher=pkg.get("publisher"),
            version=pkg.get("version"),
            category=category,
            activation_events=activation_events if isinstance(activation_events, list) else [],
            contributes=contributes if isinstance(contributes, dict) else {},
        )

    @staticmethod
    def build_result(parsed: Any) -> Optional[ParseResult]:
        """Build a ParseResult from a decoded JSON payload (tiers 1 and 2)."""
        if not isinstance(parsed, dict):
            return None

        raw_files = parsed.get("files")
        if not isinstance(raw_files, dict) or not raw_files:
            return None

        files = {
            str(path): content if isinstance(content, str) else json.dumps(content, indent=2)
            for path, content in raw_files.items()
        }

        message = parsed.get("message")
        if not isinstance(message, str) or not message:
            message = DEFAULT_MESSAGE

        return ParseResult(
            message=message,
            files=files,
            commands=_string_list(parsed.get("commands")),
            activation_events=_string_list(parsed.get("activationEvents")),
            extracted_config=ResponseParser.extract_config(files),
        )

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    @staticmethod
    def parse_direct(text: str) -> Optional[ParseResult]:
        """Tier 1: strict JSON parse of the fenced-stripped object span."""
        sliced = ResponseParser.slice_json_object(text)
        if sliced is None:
            logger.debug("No JSON object boundaries found")
            return None
        return ResponseParser.build_result(_loads(sliced))

    @staticmethod
    def parse_repaired(text: str) -> Optional[ParseResult]:
        """Tier 2: strict JSON parse after escaping raw control characters in strings."""
        sliced = ResponseParser.slice_json_object(text)
        if sliced is None:
            return None
        return ResponseParser.build_result(_loads(ResponseParser.repair_json_strings(sliced)))

    @staticmethod
    def _quote_opens_key(text: str, quote_index: int) -> bool:
        """
        Decide whether the quote at ``quote_index`` opens a key or a value.

        Steps over the string the quote opens, then checks whether the next
        ':' comes before the next ',' or '}'. There is no backtracking: a
        wrong guess is never corrected later in the scan.
        """
        _, end, closed = read_string_value(text, quote_index + 1)
        if not closed:
            return False

        colon = _find_unescaped(text, ":", end + 1)
        if colon == -1:
            return False
        terminator = _find_unescaped(text, ",}", end + 1)
        return terminator == -1 or colon < terminator

    @staticmethod
    def scan_files_object(text: str, start: int) -> Dict[str, str]:
        """
        Collect key/value string pairs from a files object without parsing it.

        ``start`` is the index just after the object's opening brace. The
        scan ends when the brace depth returns to zero or the input runs out;
        a value still open at that point is dropped.
        """
        files: Dict[str, str] = {}
        mode = ScanMode.NEUTRAL
        escape_next = False
        depth = 1
        key: Optional[str] = None
        key_chars: List[str] = []
        value_chars: List[str] = []

        for i in range(start, len(text)):
            char = text[i]

            if mode is ScanMode.NEUTRAL:
                if char == '"':
                    if ResponseParser._quote_opens_key(text, i):
                        mode = ScanMode.IN_KEY
                        key_chars = []
                    else:
                        mode = ScanMode.IN_VALUE
                        value_chars = []
                elif char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        break
                continue

            chars = key_chars if mode is ScanMode.IN_KEY else value_chars

            if escape_next:
                chars.append(char)
                escape_next = False
            elif char == "\\":
                chars.append(char)
                escape_next = True
            elif char == '"':
                if mode is ScanMode.IN_KEY:
                    key = unescape_content("".join(key_chars))
                else:
                    if key is not None:
                        files[key] = unescape_content("".join(value_chars))
                    key = None
                    key_chars = []
                    value_chars = []
                mode = ScanMode.NEUTRAL
            else:
                chars.append(char)

        return files

    @staticmethod
    def extract_message(text: str) -> Optional[str]:
        """Pull a top-level "message" string out of unparseable text."""
        match = _MESSAGE_FIELD.search(text)
        if not match:
            return None
        return unescape_content(match.group(1))

    @staticmethod
    def salvage_files(text: str) -> Optional[ParseResult]:
        """Tier 3: recover file entries from a payload that is not valid JSON."""
        files_key = text.find(FILES_KEY)
        if files_key == -1:
            return None

        brace = text.find("{", files_key + len(FILES_KEY))
        if brace == -1:
            return None

        files = ResponseParser.scan_files_object(text, brace + 1)
        if not files:
            return None

        return ParseResult(
            message=ResponseParser.extract_message(text) or SALVAGE_MESSAGE,
            files=files,
            commands=[],
            activation_events=[],
            extracted_config=ResponseParser.extract_config(files),
        )

    @classmethod
    def tiers(cls) -> Tuple[Tuple[str, Tier], ...]:
        """Parsing strategies in the order they are attempted."""
        return (
            ("direct", cls.parse_direct),
            ("repaired", cls.parse_repaired),
            ("salvage", cls.salvage_files),
        )

    @classmethod
    def parse_final(cls, text: str) -> Optional[ParseResult]:
        """
        Parse a complete response. Returns None when no tier recovers any
        file, which callers surface as "could not parse, please retry".
        """
        if not isinstance(text, str) or not text:
            return None

        # The key must appear literally; escaped spellings do not count
        if FILES_KEY not in text:
            logger.debug('No "files" key in response')
            return None

        for name, tier in cls.tiers():
            result = tier(text)
            if result is not None:
                logger.info(f"Parsed response via {name} tier: {len(result.files)} files")
                return result
            logger.debug(f"{name} tier failed, falling through")

        logger.warning(
            f"Could not parse response ({len(text)} chars): {text[:200]!r}"
        )
        return None


def parse_final(text: str) -> Optional[ParseResult]:
    """Module-level shortcut for ResponseParser.parse_final."""
    return ResponseParser.parse_final(text)
