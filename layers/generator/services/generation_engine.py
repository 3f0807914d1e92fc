"""
Generation Engine - LLM streaming for extension scaffolding.

Streams a generation from Ollama, re-derives the live file snapshot from the
whole accumulated buffer after every chunk, and parses the final response
once the stream ends.

Architecture:
- The buffer is the only state; snapshots are recomputed from it per chunk
- ResponseParser runs exactly once, after the stream's done signal
- Parsed files are validated; failures get a bounded number of repair passes
- Cancelling the consumer just stops the stream; nothing is rolled back
"""

import os
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional, Tuple

import httpx

from schemas.models import (
    ExtractionSnapshot,
    GenerateRequest,
    ParseResult,
    ValidationReport,
)
from services.prompts import build_fix_prompt, build_system_prompt
from services.helpers.stream_parser import StreamingExtractor
from services.helpers.response_parser import ResponseParser
from services.helpers.file_formatter import format_file, format_json_files
from services.helpers.file_validator import format_issues, validate_files
from services.helpers.config_sync import apply_extracted_config, merge_commands


logger = logging.getLogger("generator.engine")

# LLM configuration
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "http://ollama:11434")
LLM_MODEL = os.getenv("LLM_MODEL", "qwen2.5-coder")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "16000"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "300"))
AUTO_FIX_ATTEMPTS = int(os.getenv("AUTO_FIX_ATTEMPTS", "3"))

PARSE_FAILED_MESSAGE = "Could not parse AI response"
PARTIAL_FILES_MESSAGE = "Could not parse full response, but some files were captured."


class LLMStreamError(Exception):
    """Ollama reported an error inside an otherwise healthy stream."""


def streaming_progress(file_count: int) -> int:
    """Progress percentage shown while files stream in (20..80)."""
    return min(20 + file_count * 10, 80)


class GenerationEngine:
    """
    LLM-powered extension generator.

    Yields event dicts suitable for Server-Sent Events:
    - status:   stage update (status, progress, done)
    - progress: live snapshot (files, current_file, current_content)
    - complete: final files, message, commands, merged config and validation report
    - error:    parse or transport failure, with any files already captured
    """

    def __init__(self):
        self.client = httpx.AsyncClient(timeout=LLM_TIMEOUT)
        self.model = LLM_MODEL
        self.base_url = LLM_BASE_URL

    async def close(self) -> None:
        await self.client.aclose()

    async def stream_completion(
        self, system_prompt: str, prompt: str
    ) -> AsyncGenerator[str, None]:
        """Call Ollama /api/chat with streaming and yield text tokens."""
        url = f"{self.base_url}/api/chat"

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "stream": True,
            "options": {
                "temperature": LLM_TEMPERATURE,
                "num_predict": LLM_MAX_TOKENS,
            },
        }

        logger.debug(f"Calling Ollama (streaming): {self.model}")

        async with self.client.stream("POST", url, json=payload) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(data, dict):
                    continue
                if data.get("error"):
                    logger.error(f"Ollama stream error: {data['error']}")
                    raise LLMStreamError(str(data["error"]))
                message = data.get("message")
                token = message.get("content") if isinstance(message, dict) else None
                if isinstance(token, str) and token:
                    yield token
                if data.get("done"):
                    break

    @staticmethod
    def _status_event(status: str, progress: int) -> Dict[str, Any]:
        return {"event_type": "status", "status": status, "progress": progress, "done": False}

    @staticmethod
    def _progress_event(snapshot: ExtractionSnapshot) -> Dict[str, Any]:
        current = snapshot.current_file
        return {
            "event_type": "progress",
            "status": f"Writing {current}..." if current else "Generating code...",
            "progress": streaming_progress(len(snapshot.files)),
            "files": snapshot.files,
            "current_file": current,
            "current_content": format_file(current, snapshot.current_content) if current else "",
            "completed_files": list(snapshot.completed_files),
            "done": False,
        }

    @staticmethod
    def _error_event(status: str, snapshot: ExtractionSnapshot) -> Dict[str, Any]:
        return {
            "event_type": "error",
            "status": status,
            "partial_files": format_json_files(snapshot.completed_files),
            "done": True,
        }

    def _complete_event(
        self, request: GenerateRequest, result: ParseResult, report: ValidationReport
    ) -> Dict[str, Any]:
        config = apply_extracted_config(request.config, result.extracted_config)
        config = merge_commands(config, result.commands)
        payload = result.model_dump(by_alias=True)
        payload["files"] = format_json_files(result.files)
        return {
            "event_type": "complete",
            "status": "Complete!",
            "progress": 100,
            "result": payload,
            "config": config.model_dump(by_alias=True),
            "validation": report.model_dump(by_alias=True),
            "done": True,
        }

    async def _collect(self, system_prompt: str, prompt: str) -> str:
        chunks = []
        async for token in self.stream_completion(system_prompt, prompt):
            chunks.append(token)
        return "".join(chunks)

    async def request_fix(
        self,
        request: GenerateRequest,
        files: Dict[str, str],
        report: ValidationReport,
    ) -> Optional[ParseResult]:
        """
        Ask the model to repair ``files`` in modify mode.

        Returns the parsed repair (possibly only the changed files), or None
        when the call fails or its output cannot be parsed.
        """
        system_prompt = build_system_prompt(
            request.config,
            mode="modify",
            template_name=request.template_name,
            existing_files=files,
        )
        try:
            text = await self._collect(system_prompt, build_fix_prompt(format_issues(report)))
        except (httpx.HTTPError, LLMStreamError) as e:
            logger.warning(f"Auto-fix request failed: {e}")
            return None

        fixed = ResponseParser.parse_final(text)
        if fixed is None:
            logger.warning("Auto-fix response could not be parsed")
        return fixed

    async def generate(
        self, request: GenerateRequest
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """Generate an extension, yielding events while the response streams."""
        yield self._status_event("Starting generation...", 5)

        system_prompt = build_system_prompt(
            request.config,
            mode=request.mode,
            template_name=request.template_name,
            existing_files=request.existing_files,
        )
        logger.debug(f"Prompt size: {len(system_prompt)} chars")

        buffer = ""
        snapshot = ExtractionSnapshot()

        yield self._status_event("Generating code...", 20)

        try:
            async for token in self.stream_completion(system_prompt, request.prompt):
                buffer += token
                snapshot = StreamingExtractor.extract_partial(buffer)
                if snapshot.files:
                    yield self._progress_event(snapshot)
        except (httpx.HTTPError, LLMStreamError) as e:
            logger.error(f"Generation stream failed: {e}")
            status = f"Error: {e}"
            if snapshot.completed_files:
                status += ". Partial files were saved."
            yield self._error_event(status, snapshot)
            return

        logger.info(f"Stream finished: {len(buffer)} chars, {len(snapshot.files)} files seen")
        yield self._status_event("Parsing response...", 85)

        result = ResponseParser.parse_final(buffer)
        if result is None:
            status = PARTIAL_FILES_MESSAGE if snapshot.completed_files else PARSE_FAILED_MESSAGE
            yield self._error_event(status, snapshot)
            return

        yield self._status_event("Validating syntax...", 90)
        files = result.files
        report = validate_files(files)

        if not report.valid and request.auto_fix:
            yield self._status_event(
                f"Found {len(report.errors)} syntax error(s). Auto-fixing...", 90
            )
            for attempt in range(1, AUTO_FIX_ATTEMPTS + 1):
                yield self._status_event(
                    f"Auto-fixing syntax errors (attempt {attempt}/{AUTO_FIX_ATTEMPTS})...", 90
                )
                fixed = await self.request_fix(request, files, report)
                if fixed is None:
                    break
                files = {**files, **fixed.files}
                yield self._status_event("Validating fixes...", 90)
                report = validate_files(files)
                if report.valid:
                    yield self._status_event("All syntax errors fixed!", 95)
                    break
            else:
                yield self._status_event("Max fix attempts reached. Manual review needed.", 95)

        if files is not result.files:
            result = result.model_copy(
                update={
                    "files": files,
                    "extracted_config": ResponseParser.extract_config(files),
                }
            )

        yield self._complete_event(request, result, report)

    async def generate_text(
        self, request: GenerateRequest
    ) -> Tuple[str, Optional[ParseResult]]:
        """Non-streaming generation: returns the raw text and its parse result."""
        system_prompt = build_system_prompt(
            request.config,
            mode=request.mode,
            template_name=request.template_name,
            existing_files=request.existing_files,
        )
        text = await self._collect(system_prompt, request.prompt)
        return text, ResponseParser.parse_final(text)
