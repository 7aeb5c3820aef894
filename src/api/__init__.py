"""FastAPI endpoints for the chat client.

HTTP and streaming routes over the conversation service.
Supports Server-Sent Events for real-time reply streaming.

Endpoints:
    - GET /health: Service health status
    - GET /threads: Date-grouped thread list with title search
    - GET/DELETE /threads/{id}: Thread history and deletion
    - POST /threads/{id}/select, /threads/new: Session thread selection
    - GET /session: Current session snapshot
    - POST /chat/stream, /chat/stop: Reply streaming and cancellation
"""

from src.api.app import create_app

__all__ = ["create_app"]
