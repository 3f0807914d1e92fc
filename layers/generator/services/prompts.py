"""
System prompt construction for extension generation.

The model is told exactly which JSON envelope to emit; the parser helpers
are written against that envelope.
"""

from typing import Dict, Optional

from schemas.models import DEFAULT_EXTENSION_VERSION, ExtensionConfig


MAKEFILE = """.PHONY: build patch-version install install-code install-code-insiders install-windsurf install-cursor clean publish help

# Default target
all: build

# Patch version and build
build: patch-version
\tnpm run compile && vsce package

# Patch version number
patch-version:
\t@echo "Patching version..."
\t@python3 -c "import json; data=json.load(open('package.json')); v=data['version'].split('.'); v[2]=str(int(v[2])+1); data['version']='.'.join(v); json.dump(data, open('package.json', 'w'), indent=4)"

# Install extension in all available editors
install: build
\t@for ide in code code-insiders windsurf cursor code-server; do \\
\t\tif command -v $$ide >/dev/null 2>&1; then \\
\t\t\techo "Installing to $$ide..."; \\
\t\t\t$$ide --install-extension ./*.vsix --force; \\
\t\tfi; \\
\tdone

install-code: build
\tcode --install-extension ./*.vsix --force

install-code-insiders: build
\tcode-insiders --install-extension ./*.vsix --force

install-windsurf: build
\twindsurf --install-extension ./*.vsix --force

install-cursor: build
\tcursor --install-extension ./*.vsix --force

# Publish to VS Code Marketplace
publish: build
\tvsce publish

# Clean build artifacts
clean:
\trm -f ./*.vsix
\trm -rf ./out

help:
\t@echo "Targets: build patch-version install install-code install-code-insiders install-windsurf install-cursor publish clean"
"""


SCRATCH_FILES = [
    "package.json (complete with all metadata, commands, activation events, contributes)",
    "src/extension.ts (main entry point with activate/deactivate)",
    "src/*.ts (feature-specific modules, services, utilities as needed)",
    "tsconfig.json (proper TypeScript configuration)",
    ".vscodeignore (files to exclude from package)",
    "README.md (features, installation, usage)",
    "CHANGELOG.md (initial changelog with version 0.0.1)",
    ".gitignore (standard ignores for Node.js/TypeScript)",
    ".vscode/launch.json (debugging configuration for extension development)",
    ".vscode/tasks.json (build tasks for npm scripts)",
    "Makefile (build, install, and publish automation - use the exact content provided below)",
]


MISSIONS = {
    "generate-scratch": (
        "CREATE A COMPLETE VS CODE EXTENSION from scratch based on the user's description.\n\n"
        "If the user hasn't provided an extension name, infer a concise kebab-case name "
        "(e.g. \"git-commit-helper\"), a matching displayName and a compelling description.\n\n"
        "You MUST generate ALL of these files:\n"
        + "\n".join(f"- {item}" for item in SCRATCH_FILES)
        + "\n\n=== MAKEFILE CONTENT (USE EXACTLY AS-IS) ===\n"
        + MAKEFILE
    ),
    "add-feature": (
        "ADD A NEW FEATURE to the existing extension.\n"
        "- Analyze the existing code structure carefully\n"
        "- Create new files or modify existing ones as needed\n"
        "- Ensure full compatibility with existing functionality\n"
        "- Update package.json if new commands/settings/menus are needed\n"
        "- Follow the existing code style, patterns, and naming conventions"
    ),
    "modify": (
        "MODIFY the existing extension based on the user's specific request.\n"
        "- Make targeted, precise changes while preserving other functionality\n"
        "- Update related files and imports as necessary\n"
        "- Ensure all references, imports, and types remain valid"
    ),
}


OUTPUT_CONTRACT = """=== CRITICAL: OUTPUT FORMAT ===
Your response MUST be a single valid JSON object.

RULES:
1. Start IMMEDIATELY with { and end with } - NO other text before or after
2. NO markdown code blocks
3. All string values MUST have special characters escaped:
   newlines \\n, tabs \\t, quotes \\", backslashes \\\\, carriage returns \\r

REQUIRED JSON STRUCTURE:
{
  "message": "Brief description of what was generated",
  "files": {
    "package.json": "{\\"name\\": \\"example\\", ...escaped JSON content...}",
    "src/extension.ts": "import * as vscode from 'vscode';\\n\\nexport function activate...",
    "README.md": "# Extension Name\\n\\nDescription here..."
  },
  "commands": ["command1", "command2"],
  "activationEvents": ["onCommand:ext.cmd"]
}"""


def _existing_files_section(existing_files: Optional[Dict[str, str]]) -> str:
    if not existing_files:
        return "=== NO EXISTING FILES - CREATING FROM SCRATCH ==="
    blocks = [f"📄 {path}:\n```\n{content}\n```" for path, content in existing_files.items()]
    return "=== EXISTING PROJECT FILES ===\n" + "\n\n".join(blocks)


def build_system_prompt(
    config: ExtensionConfig,
    mode: str = "generate-scratch",
    template_name: Optional[str] = None,
    existing_files: Optional[Dict[str, str]] = None,
) -> str:
    """Render the system prompt for one generation request."""
    command_prefix = config.name or "myext"
    display_name = config.display_name or config.name or "My Extension"
    identifier = config.name or "my-extension"
    publisher = config.publisher or "publisher"
    version = config.version or DEFAULT_EXTENSION_VERSION
    category = config.category or "Other"
    template = template_name or "Custom/Blank"
    mission = MISSIONS.get(mode, MISSIONS["modify"])
    return f"""You are a world-class VS Code extension developer with expertise in TypeScript and the VS Code Extension API. You create production-ready, well-documented extensions.

=== CURRENT PROJECT CONTEXT ===
Extension Name: "{display_name}"
Identifier: "{identifier}"
Publisher: "{publisher}"
Version: "{version}"
Category: "{category}"
Description: "{config.description}"
Base Template: {template}
Mode: {mode}

{_existing_files_section(existing_files)}

=== YOUR MISSION ===
{mission}

=== CODE QUALITY REQUIREMENTS ===
1. Use modern TypeScript (ES2022+) with strict typing
2. Import VS Code API correctly: import * as vscode from 'vscode'
3. Use async/await and handle errors with user-friendly messages
4. Register every disposable with context.subscriptions
5. Use constants for command IDs and configuration keys

=== COMMAND NAMING CONVENTION ===
All commands MUST use this pattern: {command_prefix}.commandName

=== PACKAGE.JSON STRUCTURE ===
Include name, displayName, description, version, publisher, engines.vscode "^1.85.0",
categories, keywords, main "./out/extension.js", activationEvents, contributes,
scripts (compile, watch, package, lint) and devDependencies
(@types/vscode, @types/node, typescript, @vscode/vsce).

{OUTPUT_CONTRACT}"""


def build_fix_prompt(issues: str) -> str:
    """User prompt for a repair pass over files that failed validation."""
    return (
        "Fix the syntax errors\n\n"
        "Validation reported these problems (file:line:column message):\n"
        f"{issues}\n\n"
        "Return every file you change in full under \"files\". "
        "Files you leave out are kept as they are."
    )
