"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with live streaming updates
    - Date-grouped, searchable thread sidebar with deletion
    - Send and stop controls
    - Dark/light theme toggle

Contains no business logic. Delegates all operations to ChatService.
"""
