"""
Generator API Router

Endpoints for AI-assisted extension generation:
  - /stream:  Generate with SSE streaming (live file snapshots, final result)
  - /parse:   Parse a complete model response into files
  - /extract: Snapshot of a partial model response
  - /validate: Syntax check of a generated file map
  - /package: Files and archive name for .vsix packaging
"""

import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from schemas.models import FilesRequest, GenerateRequest, PackageRequest, ParseRequest
from services.generation_engine import GenerationEngine
from services.helpers.response_parser import ResponseParser
from services.helpers.stream_parser import StreamingExtractor
from services.helpers.file_validator import validate_files
from services.helpers.packager import prepare_package


logger = logging.getLogger("generator.api")
router = APIRouter(tags=["generator"])

_generation_engine: Optional[GenerationEngine] = None


def _get_generation_engine() -> GenerationEngine:
    global _generation_engine
    if _generation_engine is None:
        _generation_engine = GenerationEngine()
    return _generation_engine


async def shutdown_generation_engine() -> None:
    global _generation_engine
    if _generation_engine is not None:
        await _generation_engine.close()
        _generation_engine = None


async def _sse_events(request: GenerateRequest) -> AsyncGenerator[str, None]:
    engine = _get_generation_engine()
    async for event in engine.generate(request):
        yield f"data: {json.dumps(event)}\n\n"


@router.post("/stream")
async def generate_stream(request: GenerateRequest):
    """
    Generate extension files with Server-Sent Events (SSE) streaming.

    Event types:
      - status: stage update (status, progress, done)
      - progress: files seen so far, file being written and its content
      - complete: final result (files, message, commands) and merged config
      - error: parse/transport failure with partial_files captured so far
    """
    logger.info(f"Generation requested: mode={request.mode}, prompt={request.prompt[:80]!r}")
    return StreamingResponse(
        _sse_events(request),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.post("/parse")
async def parse_response(request: ParseRequest) -> Dict[str, Any]:
    """Parse a complete model response. 422 when no file can be recovered."""
    result = ResponseParser.parse_final(request.text)
    if result is None:
        raise HTTPException(
            status_code=422,
            detail="Could not parse generated output, please retry",
        )
    return result.model_dump(by_alias=True)


@router.post("/extract")
async def extract_partial(request: ParseRequest) -> Dict[str, Any]:
    """Report the files visible in a (possibly partial) model response."""
    return StreamingExtractor.extract_partial(request.text).model_dump(by_alias=True)


@router.post("/validate")
async def validate(request: FilesRequest) -> Dict[str, Any]:
    """Check generated JSON and TypeScript files for syntax errors."""
    return validate_files(request.files).model_dump(by_alias=True)


@router.post("/package")
async def package(request: PackageRequest) -> Dict[str, Any]:
    """Return the files to archive (package.json guaranteed) and the .vsix name."""
    result = prepare_package(request.config, request.files)
    logger.info(f"Prepared {result.package_name} with {len(result.files)} files")
    return result.model_dump(by_alias=True)
