"""Integration tests for components working together as a system.

Coverage:
    - API endpoints with real HTTP requests over ASGITransport
    - SSE reply streaming with a real SQLite store
    - Live LLM replies (when an API key is configured)
"""
