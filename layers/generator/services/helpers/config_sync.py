"""
Keeps the extension settings in step with what the model generated.
"""

import re
from typing import Any, Dict, List, Optional

from schemas.models import ExtensionConfig, ExtractedConfig


DEFAULT_COMMAND_PREFIX = "myext"

_SYNCED_FIELDS = (
    "name",
    "display_name",
    "description",
    "publisher",
    "version",
    "category",
    "activation_events",
    "contributes",
)


def apply_extracted_config(
    config: ExtensionConfig, extracted: Optional[ExtractedConfig]
) -> ExtensionConfig:
    """
    Overlay settings read from a generated package.json onto ``config``.

    Only truthy extracted values win; empty or missing ones keep the
    current setting.
    """
    if extracted is None:
        return config

    updates: Dict[str, Any] = {}
    for field in _SYNCED_FIELDS:
        value = getattr(extracted, field)
        if not value:
            continue
        if field == "activation_events":
            updates[field] = [str(event) for event in value]
        elif field == "contributes":
            updates[field] = dict(value)
        else:
            updates[field] = str(value)

    return config.model_copy(update=updates)


def command_title(command_id: str) -> str:
    """'myext.openSettingsPanel' -> 'open Settings Panel'."""
    last = command_id.split(".")[-1]
    return re.sub(r"([A-Z])", r" \1", last).strip()


def merge_commands(config: ExtensionConfig, commands: List[str]) -> ExtensionConfig:
    """
    Register generated commands under contributes.commands.

    Bare ids are namespaced with the extension name; ids already present
    are left alone.
    """
    if not commands:
        return config

    prefix = config.name or DEFAULT_COMMAND_PREFIX
    existing = list(config.contributes.get("commands") or [])
    known = {entry.get("command") for entry in existing if isinstance(entry, dict)}

    for command in commands:
        command_id = command if "." in command else f"{prefix}.{command}"
        if command_id in known:
            continue
        existing.append({"command": command_id, "title": command_title(command)})
        known.add(command_id)

    contributes = dict(config.contributes)
    contributes["commands"] = existing
    return config.model_copy(update={"contributes": contributes})
