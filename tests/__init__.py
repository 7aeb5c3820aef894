"""Test package for the streaming chat client.

Unit tests for isolated logic and integration tests for the HTTP API.

Structure:
    - unit/: Store, session, directory, controller and generator tests
    - integration/: API endpoints with real HTTP requests
    - fakes.py: Scripted generators and a manual clock

Leverages pytest with pytest-check for soft assertions.
"""
