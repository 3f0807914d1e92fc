"""
Syntax checks for generated files.

JSON files must decode. TypeScript files must balance their braces,
brackets and parentheses once string literals and line comments are
removed. Other files pass unchecked.
"""

import json
import logging
import re
from typing import Dict, List

from schemas.models import ValidationIssue, ValidationReport


logger = logging.getLogger("generator.validator")

SCRIPT_SUFFIXES = (".ts", ".tsx")

# JSON-with-comments files VS Code itself reads
JSONC_NAMES = ("tsconfig.json", "jsconfig.json")
JSONC_DIRS = (".vscode/",)

_STRING_LITERAL = re.compile(
    r'"(?:[^"\\]|\\.)*"' r"|'(?:[^'\\]|\\.)*'" r"|`(?:[^`\\]|\\.)*`"
)
_LINE_COMMENT = re.compile(r"//.*$")

# (opener, closer, plural, singular)
_DELIMITERS = (
    ("{", "}", "braces", "brace"),
    ("[", "]", "brackets", "bracket"),
    ("(", ")", "parentheses", "paren"),
)


def is_jsonc(path: str) -> bool:
    name = path.rsplit("/", 1)[-1].lower()
    return name in JSONC_NAMES or path.startswith(JSONC_DIRS)


def strip_comment_lines(content: str) -> str:
    """Blank out whole-line // comments, keeping line numbers intact."""
    return "\n".join(
        "" if line.lstrip().startswith("//") else line
        for line in content.split("\n")
    )


def validate_json(path: str, content: str) -> List[ValidationIssue]:
    if is_jsonc(path):
        content = strip_comment_lines(content)
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        return [ValidationIssue(file=path, line=e.lineno, column=e.colno, message=e.msg)]
    except RecursionError:
        return [ValidationIssue(file=path, line=1, column=1, message="Nesting too deep")]
    return []


def check_delimiters(path: str, content: str) -> List[ValidationIssue]:
    """
    Count braces, brackets and parentheses line by line.

    String literals are removed before line comments so a URL inside a
    string does not hide the rest of the line. Imbalances are reported
    against the last line, one issue per delimiter kind.
    """
    lines = content.split("\n")
    balance = {opener: 0 for opener, _, _, _ in _DELIMITERS}
    openers = {closer: opener for opener, closer, _, _ in _DELIMITERS}

    for line in lines:
        clean = _LINE_COMMENT.sub("", _STRING_LITERAL.sub("", line))
        for char in clean:
            if char in balance:
                balance[char] += 1
            elif char in openers:
                balance[openers[char]] -= 1

    issues = []
    for opener, _, plural, singular in _DELIMITERS:
        count = balance[opener]
        if count == 0:
            continue
        state = "missing" if count > 0 else "extra"
        issues.append(
            ValidationIssue(
                file=path,
                line=len(lines),
                column=1,
                message=f"Unbalanced {plural}: {state} {abs(count)} closing {singular}(s)",
            )
        )
    return issues


def validate_files(files: Dict[str, str]) -> ValidationReport:
    """Check every JSON and TypeScript file in ``files``."""
    errors: List[ValidationIssue] = []
    for path, content in files.items():
        lower = path.lower()
        if lower.endswith(SCRIPT_SUFFIXES):
            errors.extend(check_delimiters(path, content))
        elif lower.endswith(".json"):
            errors.extend(validate_json(path, content))

    if errors:
        logger.info(f"Validation found {len(errors)} issue(s) in {len(files)} files")
    return ValidationReport(valid=not errors, errors=errors)


def format_issues(report: ValidationReport) -> str:
    """One ``file:line:column message`` line per issue."""
    return "\n".join(
        f"- {issue.file}:{issue.line}:{issue.column} {issue.message}"
        for issue in report.errors
    )
