"""
Tests for file_validator - JSON decoding and TypeScript delimiter balance.
"""

import pytest
import sys
import os

sys.path.insert(
    0, os.path.join(os.path.dirname(__file__), "..", "layers", "generator")
)

from services.helpers.file_validator import (
    check_delimiters,
    format_issues,
    is_jsonc,
    validate_files,
    validate_json,
)


EXTENSION_TS = """import * as vscode from 'vscode';

export function activate(context: vscode.ExtensionContext) {
\tconst disposable = vscode.commands.registerCommand('word-counter.count', () => {
\t\tconst words = [1, 2, 3];
\t\tvscode.window.showInformationMessage(`Words: ${words.length}`);
\t});
\tcontext.subscriptions.push(disposable);
}
"""


class TestJson:
    def test_valid(self):
        assert validate_json("package.json", '{"name": "x"}') == []

    def test_position_of_missing_comma(self):
        content = '{\n  "name": "x"\n  "version": "1"\n}'
        [issue] = validate_json("package.json", content)
        assert issue.file == "package.json"
        assert (issue.line, issue.column) == (3, 3)
        assert "delimiter" in issue.message
        assert issue.severity == "error"

    def test_empty_file(self):
        [issue] = validate_json("package.json", "")
        assert (issue.line, issue.column) == (1, 1)

    def test_deep_nesting_reported(self):
        [issue] = validate_json("data.json", "[" * 100000 + "]" * 100000)
        assert issue.line == 1

    @pytest.mark.parametrize(
        "path", ["tsconfig.json", "sub/jsconfig.json", ".vscode/launch.json", ".vscode/tasks.json"]
    )
    def test_comment_lines_allowed_in_jsonc(self, path):
        content = '{\n  // A launch configuration\n  "version": "0.2.0"\n}'
        assert is_jsonc(path)
        assert validate_json(path, content) == []

    def test_comment_lines_rejected_in_package_json(self):
        content = '{\n  // comment\n  "name": "x"\n}'
        [issue] = validate_json("package.json", content)
        assert issue.line == 2

    def test_jsonc_keeps_line_numbers(self):
        content = '{\n  // comment\n  "a": 1,\n  "b": \n}'
        [issue] = validate_json("tsconfig.json", content)
        assert issue.line == 5


class TestDelimiters:
    def test_balanced_extension(self):
        assert check_delimiters("src/extension.ts", EXTENSION_TS) == []

    def test_missing_braces(self):
        [issue] = check_delimiters("src/a.ts", "function a() {\n  if (x) {")
        assert issue.message == "Unbalanced braces: missing 2 closing brace(s)"
        assert (issue.line, issue.column) == (2, 1)

    def test_extra_paren(self):
        [issue] = check_delimiters("src/a.ts", "foo());")
        assert issue.message == "Unbalanced parentheses: extra 1 closing paren(s)"

    def test_one_issue_per_kind(self):
        issues = check_delimiters("src/a.ts", "call([{")
        assert [issue.message.split(":")[0] for issue in issues] == [
            "Unbalanced braces",
            "Unbalanced brackets",
            "Unbalanced parentheses",
        ]

    def test_delimiters_in_strings_ignored(self):
        content = "const s = \"{[(\";\nconst t = '}';\nconst u = `)`;\nconst v = \"a\\\"{\";"
        assert check_delimiters("src/a.ts", content) == []

    def test_url_in_string_does_not_hide_rest_of_line(self):
        content = 'fetch("http://example.com/{id}").then((r) => r.json());'
        assert check_delimiters("src/a.ts", content) == []

    def test_line_comments_ignored(self):
        assert check_delimiters("src/a.ts", "// closes }\nconst a = 1;") == []


class TestValidateFiles:
    def test_valid_project(self):
        files = {
            "package.json": '{"name": "x"}',
            "src/extension.ts": EXTENSION_TS,
            "README.md": "{{{ not checked",
            "Makefile": "all: build",
        }
        report = validate_files(files)
        assert report.valid is True
        assert report.errors == []

    def test_collects_errors_in_file_order(self):
        files = {
            "src/view.tsx": "export const V = () => (<div>",
            "package.json": "{",
            "src/ok.ts": "ok();",
        }
        report = validate_files(files)
        assert report.valid is False
        assert [issue.file for issue in report.errors] == ["src/view.tsx", "package.json"]

    def test_uppercase_suffix_checked(self):
        assert validate_files({"SRC/A.TS": "f("}).valid is False

    def test_serialized_camel_case(self):
        report = validate_files({"a.ts": "f("})
        assert report.model_dump(by_alias=True) == {
            "valid": False,
            "errors": [
                {
                    "file": "a.ts",
                    "line": 1,
                    "column": 1,
                    "message": "Unbalanced parentheses: missing 1 closing paren(s)",
                    "severity": "error",
                }
            ],
        }

    def test_format_issues(self):
        report = validate_files({"a.ts": "f(\n", "b.ts": "}"})
        assert format_issues(report) == (
            "- a.ts:2:1 Unbalanced parentheses: missing 1 closing paren(s)\n"
            "- b.ts:1:1 Unbalanced braces: extra 1 closing brace(s)"
        )
