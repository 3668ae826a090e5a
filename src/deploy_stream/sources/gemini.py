"""Google GenAI streaming source.

Prompts a Gemini model to narrate the run (see deploy_stream.prompts) and
yields the streamed text chunks as they arrive.

The API key is read from the environment variable named by
`spec.api_key_env` (default GEMINI_API_KEY), falling back to API_KEY.
"""

from __future__ import annotations
import os
from typing import AsyncIterator, Optional

from google import genai
from google.genai import errors, types

from .base import FragmentSource, SourceError, SourceSpec, SourceType
from ..pipeline.context import ProjectConfig
from ..prompts import build_prompt


class GeminiSource(FragmentSource):
    source_type = SourceType.GENERATIVE

    def __init__(self, spec: SourceSpec, config: Optional[ProjectConfig] = None):
        super().__init__(spec, config)
        if config is None:
            raise ValueError("Gemini source needs a project config to build the prompt.")
        api_key = os.environ.get(spec.api_key_env) or os.environ.get("API_KEY")
        if not api_key:
            raise ValueError(f"{spec.api_key_env} (or API_KEY) environment variable not set")
        self.client = genai.Client(api_key=api_key)

    def metadata(self):
        return {
            "kind": "gemini",
            "model": self.spec.model,
            "log_kind": self.spec.log_kind,
        }

    async def stream(self) -> AsyncIterator[str]:
        system_instruction, prompt = build_prompt(self.config, self.spec.log_kind)
        try:
            response = await self.client.aio.models.generate_content_stream(
                model=self.spec.model,
                contents=prompt,
                config=types.GenerateContentConfig(system_instruction=system_instruction),
            )
            async for chunk in response:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            raise SourceError(self.name, f"Gemini API error: {e}") from e
