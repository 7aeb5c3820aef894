"""Streaming Chat - conversational client with live replies and local history.

Combines FastAPI for HTTP streaming, Agno for model access, NiceGUI for
the chat interface, SQLite for thread storage, and Pydantic for data
validation.

Components:
    - chat: Session state, stream controller and thread directory
    - agent: Remote text generation with cooperative cancellation
    - storage: Durable thread persistence
    - api: HTTP endpoints and streaming responses
    - ui: Web interface for chat interactions
    - models: Domain records and request/response schemas
"""

__version__ = "0.1.0"
