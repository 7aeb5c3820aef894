"""Unit tests for individual components in isolation.

Coverage:
    - storage/: SQLite persistence and record compatibility
    - chat/: Session state, thread directory and stream controller
    - agent/: Generator configuration and run event translation

Uses scripted generators instead of a live model, and mocks Agno when
testing the generator itself. Leverages pytest-check for multiple
assertions per test.
"""
