"""Agno agent logic for remote text generation.

Responsibilities:
    - Agent initialization with OpenAI or Gemini models
    - Translating conversation history into model messages
    - Streaming delta fragments with cooperative cancellation
    - Translating provider failures into GenerationFailure

Leverages the Agno framework for model access.
Maintains clean separation from session state and persistence.
"""

from src.agent.chat_agent import AgentGenerator, TextGenerator, typewriter
from src.agent.config import AgentConfig, Provider, get_agent_config

__all__ = [
    "AgentConfig",
    "AgentGenerator",
    "Provider",
    "TextGenerator",
    "get_agent_config",
    "typewriter",
]
