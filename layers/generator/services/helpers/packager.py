"""
Prepares a generated project for .vsix packaging.

Archiving itself happens downstream; this only guarantees a package.json
and names the archive.
"""

import json
from typing import Dict

from schemas.models import DEFAULT_EXTENSION_VERSION, ExtensionConfig, PackageResult


VSCODE_ENGINE = "^1.85.0"


def default_package_json(config: ExtensionConfig) -> str:
    """Minimal package.json built from the extension settings."""
    manifest = {
        "name": config.name,
        "displayName": config.display_name,
        "description": config.description,
        "version": config.version or DEFAULT_EXTENSION_VERSION,
        "publisher": config.publisher,
        "engines": {"vscode": VSCODE_ENGINE},
        "categories": [config.category or "Other"],
        "activationEvents": list(config.activation_events),
        "main": "./out/extension.js",
        "contributes": dict(config.contributes),
    }
    return json.dumps(manifest, indent=2)


def package_file_name(config: ExtensionConfig) -> str:
    """'<publisher>.<name>-<version>.vsix'"""
    version = config.version or DEFAULT_EXTENSION_VERSION
    return f"{config.publisher}.{config.name}-{version}.vsix"


def prepare_package(config: ExtensionConfig, files: Dict[str, str]) -> PackageResult:
    packaged = dict(files)
    if not packaged.get("package.json"):
        packaged["package.json"] = default_package_json(config)
    return PackageResult(package_name=package_file_name(config), files=packaged)
