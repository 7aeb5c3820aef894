"""Agno-backed text generator with streaming support.

The remote model is consumed as "given an ordered conversation history,
produce a lazy, finite sequence of text fragments, or fail".

Architecture Decisions:

1. **Stateless Agent** - The conversation lives in the local thread store, so
   the Agno agent runs without its own storage or history. The full history
   is passed on every turn as Agno ``Message`` objects.

2. **Delta Fragments** - Agno emits run events; only run-content events are
   relayed, and each one carries new text only (never the cumulative reply).

3. **Single Failure Type** - Transport, auth and quota errors (and Agno
   run-error events) surface as GenerationFailure so the stream controller
   can record a failed turn instead of crashing.

4. **Cooperative Cancellation** - The generator checks the cancellation
   token between fragments and stops yielding once it is triggered.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from agno.agent import Agent
from agno.models.google import Gemini
from agno.models.message import Message as AgnoMessage
from agno.models.openai import OpenAIChat
from agno.run.agent import RunEvent

from src.agent.cancellation import CancellationToken
from src.agent.config import AgentConfig, Provider, get_agent_config
from src.errors import GenerationFailure
from src.models.schemas import Role

logger = logging.getLogger(__name__)

History = Sequence[tuple[Role, str]]


class TextGenerator(Protocol):
    """Remote text generation service."""

    def stream(
        self, history: History, token: CancellationToken | None = None
    ) -> AsyncIterator[str]: ...

    async def complete(self, history: History) -> str: ...


async def typewriter(fragments: AsyncIterator[str], delay: float = 0.0) -> AsyncIterator[str]:
    """Re-emit each fragment one character at a time.

    Args:
        fragments: Upstream delta fragments.
        delay: Seconds to pause after each character.

    Yields:
        Single characters, in order.
    """
    async for fragment in fragments:
        for char in fragment:
            yield char
            await asyncio.sleep(delay)


class AgentGenerator:
    """Text generator wrapping an Agno agent.

    Wraps Agno's Agent with:
    - OpenAI or Gemini model selection from configuration
    - Explicit conversation history on every call
    - Clean fragment stream for the stream controller
    - Centralized error translation
    """

    def __init__(self, config: AgentConfig | None = None) -> None:
        """Initialize the generator.

        Args:
            config: Optional agent configuration.
                    Loads from environment if not provided.
        """
        self._config = config or get_agent_config()
        self._agent = self._create_agent()

    def _create_model(self) -> OpenAIChat | Gemini:
        if self._config.provider is Provider.GOOGLE:
            return Gemini(
                id=self._config.model_name,
                api_key=self._config.api_key,
                temperature=self._config.temperature,
                max_output_tokens=self._config.max_tokens,
            )
        return OpenAIChat(
            id=self._config.model_name,
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            temperature=self._config.temperature,
            max_tokens=self._config.max_tokens,
        )

    def _create_agent(self) -> Agent:
        """Create the Agno agent instance.

        Returns:
            Configured Agent without storage; history is supplied per call.
        """
        return Agent(
            model=self._create_model(),
            description="A helpful conversational assistant.",
            instructions=[
                "Provide helpful and accurate responses.",
                "Be concise yet thorough.",
            ],
            add_history_to_context=False,
            # Output as markdown for rich formatting in UI
            markdown=True,
        )

    @staticmethod
    def _to_messages(history: History) -> list[AgnoMessage]:
        return [AgnoMessage(role=role.value, content=content) for role, content in history]

    async def stream(
        self,
        history: History,
        token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Stream reply fragments for a conversation.

        Args:
            history: Ordered (role, content) turns, ending with the user's message.
            token: Optional cancellation token checked between fragments.

        Yields:
            Non-empty text deltas as they arrive.

        Raises:
            GenerationFailure: If the model call fails before or during streaming.
        """
        try:
            response_stream = self._agent.arun(
                input=self._to_messages(history),
                stream=True,
            )

            async for chunk in response_stream:
                if token is not None and token.cancelled:
                    break
                event = getattr(chunk, "event", None)
                if event == RunEvent.run_error:
                    raise GenerationFailure(f"Model run failed: {chunk.content}")
                if event == RunEvent.run_content and chunk.content:
                    yield str(chunk.content)

        except GenerationFailure:
            raise
        except Exception as e:
            logger.error(f"Model streaming error: {e}")
            raise GenerationFailure(f"Failed to get response from model: {e}") from e

    async def complete(self, history: History) -> str:
        """Get the complete reply for a conversation.

        Non-streaming alternative for simpler use cases.

        Raises:
            GenerationFailure: If the model call fails.
        """
        try:
            response = await self._agent.arun(input=self._to_messages(history))
        except Exception as e:
            logger.error(f"Model error: {e}")
            raise GenerationFailure(f"Failed to get response from model: {e}") from e
        return response.content or ""
