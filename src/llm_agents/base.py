"""Base agent class for LLM-driven analysis."""

import json
import re
from abc import ABC, abstractmethod
from typing import TypeVar

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from src.core.config import Settings, get_settings
from src.core.exceptions import GenerationError, SchemaValidationError
from src.llm_agents.factory import get_llm_client

T = TypeVar("T", bound=BaseModel)


class BaseAgent(ABC):
    """Base class for all LLM agents."""

    def __init__(self, client: AsyncOpenAI | None = None, settings: Settings | None = None):
        self.client = client or get_llm_client()
        self.settings = settings or get_settings()

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name for this agent."""
        pass

    @property
    def timeout(self) -> float:
        """Timeout in seconds for this agent."""
        return self.settings.llm_timeout

    async def _call_llm(
        self,
        prompt: str,
        system_message: str | None = None,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        json_mode: bool = True,
    ) -> str:
        """Call the chat completions API once.

        Raises:
            GenerationError: On any API failure, with a readable message for
                quota, authentication and timeout errors
        """
        messages = []
        if system_message:
            messages.append({"role": "system", "content": system_message})
        messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=self.timeout,
                **kwargs,
            )
        except openai.RateLimitError as e:
            raise GenerationError(
                "LLM API quota exceeded. Please check your plan and billing details."
            ) from e
        except openai.AuthenticationError as e:
            raise GenerationError("Invalid LLM API key. Please check your configuration.") from e
        except openai.APITimeoutError as e:
            raise GenerationError("LLM request timed out. Please try again.") from e
        except openai.OpenAIError as e:
            raise GenerationError(f"LLM call failed: {e}") from e

        if not response.choices:
            raise GenerationError("LLM returned no choices")
        return response.choices[0].message.content or ""

    def _parse_json_response(self, content: str) -> dict:
        """Extract and parse the JSON object from an LLM response."""
        json_str = self._extract_json_block(content)

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise SchemaValidationError(
                f"Failed to parse JSON: {e}\nContent: {content[:500]}"
            ) from e

        if not isinstance(data, dict):
            raise SchemaValidationError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    def _extract_json_block(self, content: str) -> str:
        """Extract JSON string from markdown code blocks or raw text."""
        # Look for ```json ... ```
        match = re.search(r"```json\s*(.*?)\s*```", content, re.DOTALL)
        if match:
            return match.group(1)

        # Look for ``` ... ```
        match = re.search(r"```\s*(.*?)\s*```", content, re.DOTALL)
        if match:
            return match.group(1)

        # Look for { ... }
        match = re.search(r"\{.*\}", content, re.DOTALL)
        if match:
            return match.group(0)

        # Return as-is if no markers found
        return content

    def _validate_response(self, data: dict, schema_class: type[T]) -> T:
        """Validate parsed JSON against a Pydantic schema."""
        try:
            return schema_class.model_validate(data)
        except ValidationError as e:
            missing = sorted(
                {".".join(str(p) for p in err["loc"]) for err in e.errors() if err["loc"]}
            )
            raise SchemaValidationError(
                f"Invalid analysis format from LLM: {', '.join(missing) or e}"
            ) from e

    async def _call_and_validate(
        self,
        prompt: str,
        schema_class: type[T],
        system_message: str | None = None,
    ) -> T:
        """Call the LLM, parse its JSON and validate it in one step."""
        content = await self._call_llm(
            prompt,
            system_message=system_message,
            max_tokens=self.settings.llm_max_tokens,
            temperature=self.settings.llm_temperature,
        )
        data = self._parse_json_response(content)
        return self._validate_response(data, schema_class)
