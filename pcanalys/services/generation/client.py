"""
Generation capability: turn a hardware profile and a usage profile into a
stream of recommendation text.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from openai import AsyncOpenAI, OpenAIError

from pcanalys.config import constants
from pcanalys.config.manager import ConfigManager
from pcanalys.schemas.analysis import UsageProfile
from pcanalys.schemas.hardware import HardwareProfile
from pcanalys.services.errors import UpstreamGenerationFailure
from pcanalys.services.generation.prompt import build_prompt
from pcanalys.utils.logger import get_logger

log = get_logger(__name__)


class GenerationClient(ABC):
    """Interface for text generation backends."""

    @abstractmethod
    def stream(self, profile: HardwareProfile, usage: UsageProfile) -> AsyncIterator[str]:
        """
        Yield recommendation text chunks in generation order.

        Implementations are async generators: nothing happens until the first
        chunk is requested, and aclose() must release the upstream connection.
        """
        pass


class GroqGenerationClient(GenerationClient):
    """
    Streams chat completions from Groq through its OpenAI-compatible API.
    The API key is resolved on first use, not at construction.
    """

    def __init__(self, config: ConfigManager, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            api_key = self.config.get_secure("GROQ_API_KEY")
            if not api_key:
                raise UpstreamGenerationFailure("Generation service is not configured")
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=self.config.get("groq_base_url", constants.DEFAULT_GROQ_BASE_URL),
            )
        return self._client

    async def stream(self, profile: HardwareProfile, usage: UsageProfile) -> AsyncIterator[str]:
        client = self._get_client()
        model = self.config.get("groq_model", constants.DEFAULT_GROQ_MODEL)
        prompt = build_prompt(
            profile,
            usage,
            self.config.get("recommendation_language", constants.DEFAULT_RECOMMENDATION_LANGUAGE),
        )

        log.info(f"Requesting {usage.value} recommendations from {model}")
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.get_float("temperature", constants.DEFAULT_TEMPERATURE),
                max_tokens=self.config.get_int("max_tokens", constants.DEFAULT_MAX_TOKENS),
                stream=True,
            )
        except OpenAIError as e:
            raise UpstreamGenerationFailure(f"Generation request failed: {e}") from e

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except OpenAIError as e:
            raise UpstreamGenerationFailure(f"Generation stream failed: {e}") from e
        finally:
            await response.close()
