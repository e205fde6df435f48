"""The code generator collaborator and its OpenAI-backed implementation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from canvasforge.artifacts import ArtifactTriple
from canvasforge.errors import GenerationUnavailable

from .prompts import build_messages

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    artifacts: ArtifactTriple
    description: str


class CodeGenerator(Protocol):
    async def generate(
        self, prompt: str, previous: ArtifactTriple | None = None
    ) -> GenerationResult:
        """Produce a new artifact triple, raising ``GenerationUnavailable`` on failure."""
        ...


class GeneratedGame(BaseModel):
    html: str
    css: str
    javascript: str
    description: str


class OpenAIGameCodeGenerator:
    """``CodeGenerator`` backed by an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        *,
        model: str,
        client: Any | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
        temperature: float | None = None,
    ) -> None:
        if not model or not model.strip():
            raise ValueError("model must be a non-empty string")
        self._model = model.strip()
        self._temperature = temperature
        self._client = client
        self._client_options = {"api_key": api_key, "base_url": base_url, "timeout": timeout}

    def _get_client(self):
        # Built lazily; a missing API key raises OpenAIError here, inside generate()
        if self._client is None:
            self._client = AsyncOpenAI(**self._client_options)
        return self._client

    async def generate(
        self, prompt: str, previous: ArtifactTriple | None = None
    ) -> GenerationResult:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": build_messages(prompt, previous),
            "response_format": {"type": "json_object"},
        }
        if self._temperature is not None:
            request["temperature"] = self._temperature

        try:
            response = await self._get_client().chat.completions.create(**request)
        except openai.OpenAIError as exc:
            log.error("Code generation request failed: %s", exc)
            raise GenerationUnavailable("Code generation request failed") from exc

        choices = getattr(response, "choices", None)
        if not choices:
            raise GenerationUnavailable("Code generator returned no choices")
        content = getattr(choices[0].message, "content", None)
        if not content:
            raise GenerationUnavailable("Code generator returned an empty message")

        try:
            payload = GeneratedGame.model_validate_json(content)
        except SchemaError as exc:
            log.error("Code generator returned malformed output: %s", exc)
            raise GenerationUnavailable("Code generator returned malformed output") from exc

        return GenerationResult(
            artifacts=ArtifactTriple(
                markup=payload.html, styles=payload.css, logic=payload.javascript
            ),
            description=payload.description,
        )
