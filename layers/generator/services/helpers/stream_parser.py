"""
StreamingExtractor - Live file discovery over a partially streamed response.

Called on every received chunk with the whole buffer accumulated so far.
Chunk boundaries can split tokens, escapes or quotes anywhere, so nothing is
carried between calls: every snapshot is derived fresh from the buffer.
"""

import re
from typing import Dict, List, Optional, Tuple

from schemas.models import ExtractionSnapshot

# Paths that count as generated project files while streaming.
RECOGNIZED_EXTENSIONS = (
    ".js",
    ".ts",
    ".tsx",
    ".json",
    ".md",
    ".gitignore",
    ".vscodeignore",
    "Makefile",
)

_EXTENSION_ALTERNATION = "|".join(re.escape(ext) for ext in RECOGNIZED_EXTENSIONS)

# "path/to/file.ts" : "   <- header of a file entry; value starts after the quote
FILE_ENTRY_HEADER = re.compile(
    r'"([^"\\\n]*(?:' + _EXTENSION_ALTERNATION + r'))"\s*:\s*"',
    re.IGNORECASE,
)

_ESCAPE_SEQUENCE = re.compile(r"\\(.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}


def is_recognized_path(path: str) -> bool:
    """True if the path ends with one of the recognized file extensions."""
    lowered = path.lower()
    return any(lowered.endswith(ext.lower()) for ext in RECOGNIZED_EXTENSIONS)


def unescape_content(raw: str) -> str:
    """
    Decode the JSON escapes a model emits inside file contents.

    All sequences are replaced in one pass so an escaped backslash is never
    decoded twice. Unknown escapes are kept verbatim. A lone trailing
    backslash is an escape cut off by a chunk boundary and is dropped.
    """
    if raw.endswith("\\") and (len(raw) - len(raw.rstrip("\\"))) % 2 == 1:
        raw = raw[:-1]
    return _ESCAPE_SEQUENCE.sub(
        lambda m: _ESCAPES.get(m.group(1), m.group(0)), raw
    )


def read_string_value(text: str, start: int) -> Tuple[str, int, bool]:
    """
    Read a double-quoted string body beginning at ``start``.

    Returns (raw_body, end_index, closed). ``end_index`` is the index of the
    closing quote when closed, else ``len(text)``.
    """
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            return text[start:i], i, True
    return text[start:], len(text), False


class StreamingExtractor:
    """Derives an ExtractionSnapshot from a streaming buffer."""

    @staticmethod
    def extract_partial(buffer: str) -> ExtractionSnapshot:
        """
        Report which files have been fully emitted and which is in progress.

        Entries are scanned left to right; after a complete value the scan
        resumes past its closing quote so file contents are never read as
        entry headers. An entry whose value runs to the end of the buffer is
        the file currently being written.
        """
        files: List[str] = []
        completed: Dict[str, str] = {}
        current_file: Optional[str] = None
        current_content = ""

        if not buffer:
            return ExtractionSnapshot()

        pos = 0
        while True:
            match = FILE_ENTRY_HEADER.search(buffer, pos)
            if match is None:
                break

            path = match.group(1)
            if path not in files:
                files.append(path)

            raw, end, closed = read_string_value(buffer, match.end())
            if not closed:
                current_file = path
                current_content = unescape_content(raw)
                break

            completed[path] = unescape_content(raw)
            pos = end + 1

        return ExtractionSnapshot(
            files=files,
            current_file=current_file,
            current_content=current_content,
            completed_files=completed,
        )


def extract_partial(buffer: str) -> ExtractionSnapshot:
    """Module-level shortcut for StreamingExtractor.extract_partial."""
    return StreamingExtractor.extract_partial(buffer)
