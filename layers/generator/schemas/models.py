"""
Generator Schemas

Pydantic models shared by the parser helpers, the generation engine and the
API router. Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


GenerationMode = Literal["generate-scratch", "add-feature", "modify"]

DEFAULT_EXTENSION_VERSION = "0.0.1"


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Extension settings
# ============================================================================


class ExtensionConfig(CamelModel):
    """Settings of the extension being scaffolded (mirrors package.json)."""

    name: str = ""
    display_name: str = ""
    description: str = ""
    publisher: str = ""
    version: str = DEFAULT_EXTENSION_VERSION
    category: str = "Other"
    activation_events: List[str] = Field(default_factory=list)
    contributes: Dict[str, Any] = Field(default_factory=dict)


class ExtractedConfig(CamelModel):
    """Config fragment recovered from a generated package.json."""

    name: Optional[Any] = None
    display_name: Optional[Any] = None
    description: Optional[Any] = None
    publisher: Optional[Any] = None
    version: Optional[Any] = None
    category: Any = "Other"
    activation_events: List[Any] = Field(default_factory=list)
    contributes: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Parser output
# ============================================================================


class ExtractionSnapshot(CamelModel):
    """What the live UI should show for the buffer received so far."""

    files: List[str] = Field(default_factory=list)
    current_file: Optional[str] = None
    current_content: str = ""
    completed_files: Dict[str, str] = Field(default_factory=dict)


class ParseResult(CamelModel):
    """Authoritative result of parsing a complete generation response."""

    message: str
    files: Dict[str, str]
    commands: List[str] = Field(default_factory=list)
    activation_events: List[str] = Field(default_factory=list)
    extracted_config: Optional[ExtractedConfig] = None


# ============================================================================
# Validation / packaging
# ============================================================================


class ValidationIssue(CamelModel):
    """One syntax problem found in a generated file (1-based position)."""

    file: str
    line: int
    column: int
    message: str
    severity: Literal["error", "warning"] = "error"


class ValidationReport(CamelModel):
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)


class PackageResult(CamelModel):
    """Files ready to be zipped into a .vsix, plus the archive name."""

    success: bool = True
    package_name: str
    files: Dict[str, str]


# ============================================================================
# API requests
# ============================================================================


class GenerateRequest(CamelModel):
    """Request to generate or modify an extension."""

    prompt: str = Field(..., min_length=1, description="User description of the change")
    config: ExtensionConfig = Field(default_factory=ExtensionConfig)
    mode: GenerationMode = "generate-scratch"
    template_name: Optional[str] = Field(
        None, description="Name of the base template, if one was selected"
    )
    existing_files: Optional[Dict[str, str]] = Field(
        None, description="Current project files (add-feature / modify modes)"
    )
    auto_fix: bool = Field(
        True, description="Ask the model to repair files that fail validation"
    )


class FilesRequest(CamelModel):
    """A generated file map to validate."""

    files: Dict[str, str]


class PackageRequest(CamelModel):
    config: ExtensionConfig
    files: Dict[str, str]


class ParseRequest(BaseModel):
    """Raw model output to parse or inspect."""

    text: str = Field(..., description="Accumulated response text")
