"""
LLM Provider abstraction for HexForge.

This module provides a clean interface to LLM services with:
- Support for multiple providers (Anthropic Claude, OpenAI, Google Gemini)
- Retry logic with linear backoff
- JSON extraction from model replies

The LLM only PROPOSES edits. Everything it returns is untrusted input that
is parsed and validated before any of it touches the map.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
import json
import logging
import os
import re
import time

from hexforge.errors import ContentGenerationError

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    MOCK = "mock"  # For testing


class LLMRole(str, Enum):
    """Roles for messages in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


DEFAULT_MODELS: dict[LLMProvider, str] = {
    LLMProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    LLMProvider.OPENAI: "gpt-4o",
    LLMProvider.GEMINI: "gemini-2.5-flash",
    LLMProvider.MOCK: "mock",
}


@dataclass
class LLMMessage:
    """A message in an LLM conversation."""

    role: LLMRole
    content: str


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict[str, int] = field(default_factory=dict)  # tokens used
    raw_response: Optional[Any] = None

    # Set when the request did not produce usable content
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class LLMConfig:
    """Configuration for LLM provider."""

    provider: LLMProvider = LLMProvider.MOCK
    model: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7
    api_key: Optional[str] = None

    # Rate limiting
    max_retries: int = 3
    retry_delay: float = 1.0

    # Response constraints
    max_response_length: int = 60000

    def __post_init__(self):
        if isinstance(self.provider, str):
            self.provider = LLMProvider(self.provider)
        if not self.model:
            self.model = DEFAULT_MODELS[self.provider]


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider: LLMProvider = LLMProvider.MOCK

    def __init__(self, config: LLMConfig):
        self.config = config

    @abstractmethod
    def complete(
        self,
        messages: list[LLMMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate a completion from the LLM."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is available."""
        pass

    def _unavailable(self) -> LLMResponse:
        return LLMResponse(
            content="",
            model=self.config.model,
            provider=self.provider,
            errors=["client_unavailable"],
        )

    def _failed(self) -> LLMResponse:
        return LLMResponse(
            content="",
            model=self.config.model,
            provider=self.provider,
            errors=["request_failed"],
        )

    def _backoff(self, attempt: int) -> None:
        if attempt < self.config.max_retries - 1:
            time.sleep(self.config.retry_delay * (attempt + 1))


class AnthropicClient(BaseLLMClient):
    """Client for Anthropic Claude API."""

    provider = LLMProvider.ANTHROPIC

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client = None
        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize the Anthropic client."""
        try:
            import anthropic

            api_key = self.config.api_key or os.getenv("ANTHROPIC_API_KEY")
            if api_key:
                self._client = anthropic.Anthropic(api_key=api_key)
            else:
                logger.warning(
                    "ANTHROPIC_API_KEY not set. Set the environment variable or pass api_key in config."
                )
        except ImportError:
            logger.warning(
                "anthropic package not installed. "
                "Install with: pip install hexforge[llm-anthropic]"
            )
        except Exception as e:
            logger.error(f"Failed to initialize Anthropic client: {e}")

    def is_available(self) -> bool:
        """Check if Anthropic API is available."""
        return self._client is not None

    def complete(
        self,
        messages: list[LLMMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate completion using Claude."""
        if not self._client:
            return self._unavailable()

        # Convert messages to Anthropic format
        anthropic_messages = [
            {"role": msg.role.value, "content": msg.content}
            for msg in messages
            if msg.role != LLMRole.SYSTEM
        ]

        for attempt in range(self.config.max_retries):
            try:
                response = self._client.messages.create(
                    model=self.config.model,
                    max_tokens=self.config.max_tokens,
                    system=system_prompt or "",
                    messages=anthropic_messages,
                )

                content = response.content[0].text if response.content else ""

                return LLMResponse(
                    content=content,
                    model=self.config.model,
                    provider=self.provider,
                    usage={
                        "input_tokens": response.usage.input_tokens,
                        "output_tokens": response.usage.output_tokens,
                    },
                    raw_response=response,
                )
            except Exception as e:
                logger.warning(f"Anthropic API attempt {attempt + 1} failed: {e}")
                self._backoff(attempt)

        return self._failed()


class OpenAIClient(BaseLLMClient):
    """Client for OpenAI API."""

    provider = LLMProvider.OPENAI

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client = None
        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize the OpenAI client."""
        try:
            import openai

            api_key = self.config.api_key or os.getenv("OPENAI_API_KEY")
            if api_key:
                self._client = openai.OpenAI(api_key=api_key)
            else:
                logger.warning(
                    "OPENAI_API_KEY not set. Set the environment variable or pass api_key in config."
                )
        except ImportError:
            logger.warning(
                "openai package not installed. "
                "Install with: pip install hexforge[llm-openai]"
            )
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI client: {e}")

    def is_available(self) -> bool:
        """Check if OpenAI API is available."""
        return self._client is not None

    def complete(
        self,
        messages: list[LLMMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate completion using OpenAI, in JSON mode."""
        if not self._client:
            return self._unavailable()

        openai_messages = []
        if system_prompt:
            openai_messages.append({"role": "system", "content": system_prompt})
        for msg in messages:
            openai_messages.append({"role": msg.role.value, "content": msg.content})

        for attempt in range(self.config.max_retries):
            try:
                response = self._client.chat.completions.create(
                    model=self.config.model,
                    messages=openai_messages,
                    max_tokens=self.config.max_tokens,
                    temperature=self.config.temperature,
                    response_format={"type": "json_object"},
                )

                content = response.choices[0].message.content or ""

                return LLMResponse(
                    content=content,
                    model=self.config.model,
                    provider=self.provider,
                    usage={
                        "prompt_tokens": response.usage.prompt_tokens,
                        "completion_tokens": response.usage.completion_tokens,
                    },
                    raw_response=response,
                )
            except Exception as e:
                logger.warning(f"OpenAI API attempt {attempt + 1} failed: {e}")
                self._backoff(attempt)

        return self._failed()


class GeminiClient(BaseLLMClient):
    """Client for the Google Gemini API."""

    provider = LLMProvider.GEMINI

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client = None
        self._types = None
        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize the Gemini client."""
        try:
            from google import genai
            from google.genai import types

            api_key = (
                self.config.api_key
                or os.getenv("GEMINI_API_KEY")
                or os.getenv("GOOGLE_API_KEY")
            )
            if api_key:
                self._client = genai.Client(api_key=api_key)
                self._types = types
            else:
                logger.warning(
                    "GEMINI_API_KEY not set. Set the environment variable or pass api_key in config."
                )
        except ImportError:
            logger.warning(
                "google-genai package not installed. "
                "Install with: pip install hexforge[llm-gemini]"
            )
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {e}")

    def is_available(self) -> bool:
        """Check if Gemini API is available."""
        return self._client is not None

    def complete(
        self,
        messages: list[LLMMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Generate completion using Gemini with a JSON response type."""
        if not self._client:
            return self._unavailable()

        contents = "\n\n".join(msg.content for msg in messages if msg.role != LLMRole.SYSTEM)
        generation_config = self._types.GenerateContentConfig(
            system_instruction=system_prompt or None,
            max_output_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            response_mime_type="application/json",
        )

        for attempt in range(self.config.max_retries):
            try:
                response = self._client.models.generate_content(
                    model=self.config.model,
                    contents=contents,
                    config=generation_config,
                )

                usage = {}
                metadata = getattr(response, "usage_metadata", None)
                if metadata is not None:
                    usage = {
                        "prompt_tokens": metadata.prompt_token_count or 0,
                        "completion_tokens": metadata.candidates_token_count or 0,
                    }

                return LLMResponse(
                    content=response.text or "",
                    model=self.config.model,
                    provider=self.provider,
                    usage=usage,
                    raw_response=response,
                )
            except Exception as e:
                logger.warning(f"Gemini API attempt {attempt + 1} failed: {e}")
                self._backoff(attempt)

        return self._failed()


class MockLLMClient(BaseLLMClient):
    """Mock LLM client for testing."""

    provider = LLMProvider.MOCK

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._responses: list[str] = []
        self._response_index = 0
        self.requests: list[tuple[Optional[str], list[LLMMessage]]] = []

    def set_responses(self, responses: list[str]) -> None:
        """Set canned responses for testing."""
        self._responses = responses
        self._response_index = 0

    def is_available(self) -> bool:
        """Mock client is always available."""
        return True

    def complete(
        self,
        messages: list[LLMMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Return the next canned response (an empty JSON object by default)."""
        self.requests.append((system_prompt, list(messages)))
        if self._responses:
            content = self._responses[self._response_index % len(self._responses)]
            self._response_index += 1
        else:
            content = "{}"

        return LLMResponse(
            content=content,
            model="mock",
            provider=LLMProvider.MOCK,
            usage={"tokens": 100},
        )


# =============================================================================
# JSON EXTRACTION
# =============================================================================


_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def extract_json(text: str) -> Any:
    """
    Parse a model reply as JSON.

    Tolerates a surrounding markdown code fence and leading or trailing
    prose around a single JSON object or array.

    Raises:
        ContentGenerationError: If no JSON value can be parsed
    """
    stripped = text.strip()
    fenced = _CODE_FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()

    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    starts = [i for i in (stripped.find("{"), stripped.find("[")) if i >= 0]
    if starts:
        start = min(starts)
        closer = "}" if stripped[start] == "{" else "]"
        end = stripped.rfind(closer)
        if end > start:
            try:
                return json.loads(stripped[start:end + 1])
            except json.JSONDecodeError as e:
                raise ContentGenerationError(f"Response is not valid JSON: {e}")
    raise ContentGenerationError("Response does not contain JSON")


# =============================================================================
# MANAGER
# =============================================================================


class LLMManager:
    """
    Central manager for LLM interactions.

    Provides:
    - Client selection by provider
    - Response validation (errors, length)
    - JSON decoding of replies
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        """
        Initialize the LLM manager.

        Args:
            config: LLM configuration. If None, uses defaults.
        """
        self.config = config or LLMConfig()
        self._client: Optional[BaseLLMClient] = None
        self._initialize_client()

    def _initialize_client(self) -> None:
        if self.config.provider == LLMProvider.ANTHROPIC:
            self._client = AnthropicClient(self.config)
        elif self.config.provider == LLMProvider.OPENAI:
            self._client = OpenAIClient(self.config)
        elif self.config.provider == LLMProvider.GEMINI:
            self._client = GeminiClient(self.config)
        elif self.config.provider == LLMProvider.MOCK:
            self._client = MockLLMClient(self.config)

    @property
    def client(self) -> Optional[BaseLLMClient]:
        return self._client

    def is_available(self) -> bool:
        """Check if the configured LLM is available."""
        return self._client is not None and self._client.is_available()

    def complete(
        self,
        messages: list[LLMMessage],
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """
        Generate an LLM completion with validation.

        Args:
            messages: Conversation messages
            system_prompt: System prompt to prepend

        Returns:
            LLMResponse; check .ok before using the content
        """
        if not self.is_available():
            return LLMResponse(
                content="",
                model="none",
                provider=self.config.provider,
                errors=["no_provider_available"],
            )

        response = self._client.complete(messages, system_prompt)

        if len(response.content) > self.config.max_response_length:
            logger.warning(
                f"LLM response of {len(response.content)} chars exceeds "
                f"limit of {self.config.max_response_length}"
            )
            response.errors.append("response_too_long")

        return response

    def complete_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> Any:
        """
        Send a single user prompt and decode the reply as JSON.

        Raises:
            ContentGenerationError: If the request failed or the reply is not JSON
        """
        response = self.complete(
            [LLMMessage(role=LLMRole.USER, content=prompt)],
            system_prompt=system_prompt,
        )
        if not response.ok:
            raise ContentGenerationError(f"LLM request failed: {', '.join(response.errors)}")
        return extract_json(response.content)

    def get_mock_client(self) -> Optional[MockLLMClient]:
        """The mock client, when the manager was configured with the mock provider."""
        if isinstance(self._client, MockLLMClient):
            return self._client
        return None


def get_llm_manager(config: Optional[LLMConfig] = None) -> LLMManager:
    """Factory function to get an LLM manager instance."""
    return LLMManager(config)
