"""
Pretty-printing for generated JSON files.

Models emit package.json, tsconfig.json and friends as single-line escaped
strings; these are re-indented before being shown or written.
"""

import json
from typing import Dict


def format_file(path: str, content: str) -> str:
    """Re-indent ``content`` when ``path`` is a JSON file that parses; else return it unchanged."""
    if not path.endswith(".json"):
        return content
    try:
        return json.dumps(json.loads(content), indent=2, ensure_ascii=False)
    except (ValueError, RecursionError):
        return content


def format_json_files(files: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of ``files`` with every parseable JSON file re-indented."""
    return {path: format_file(path, content) for path, content in files.items()}
