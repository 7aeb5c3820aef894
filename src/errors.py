"""Error taxonomy shared by the storage, generator and conversation layers."""


class ChatError(Exception):
    """Base class for conversation core errors."""


class NoActiveThread(ChatError):
    """Raised when a message update is attempted with no selected thread."""

    def __init__(self, message: str = "No thread is active; create or select one first") -> None:
        super().__init__(message)


class InvalidSessionUpdate(ChatError):
    """Raised when a session mutation would break a session invariant."""


class GenerationFailure(ChatError):
    """Raised when the remote generator fails before or during streaming."""


class StorageUnavailable(ChatError):
    """Raised when the persistent store cannot complete an operation."""


class ConcurrentSendRejected(ChatError):
    """Raised when a send is attempted while another is in flight."""

    def __init__(self, message: str = "A reply is already being generated") -> None:
        super().__init__(message)


class ThreadBusy(ChatError):
    """Raised when the streaming thread would be switched away or deleted."""


class ThreadNotFound(ChatError):
    """Raised when a thread id is not known to the directory or store."""

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread not found: {thread_id}")
        self.thread_id = thread_id
