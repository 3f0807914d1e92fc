"""
Helper modules for the Generation Engine.

These modules hold the parsing logic that runs on model output:
- stream_parser: StreamingExtractor for live file discovery during streaming
- response_parser: ResponseParser for the final three-tier parse
- file_formatter: JSON file re-indentation
- file_validator: JSON / TypeScript syntax checks feeding the auto-fix loop
- config_sync: Extension settings / command merging from generated files
- packager: package.json fallback and .vsix naming
"""

from .stream_parser import StreamingExtractor, extract_partial
from .response_parser import ResponseParser, parse_final
from .file_formatter import format_file, format_json_files
from .file_validator import validate_files
from .config_sync import apply_extracted_config, merge_commands
from .packager import prepare_package

__all__ = [
    "StreamingExtractor",
    "extract_partial",
    "ResponseParser",
    "parse_final",
    "format_file",
    "format_json_files",
    "validate_files",
    "apply_extracted_config",
    "merge_commands",
    "prepare_package",
]
