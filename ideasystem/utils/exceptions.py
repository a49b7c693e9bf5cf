"""Custom exception classes."""


class IdeaSystemException(Exception):
    """Base exception for the idea system."""

    def __init__(self, detail: str = "Idea system error"):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(IdeaSystemException):
    """Raised when a referenced entity does not exist."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        super().__init__(detail or f"{resource} not found")


class ValidationError(IdeaSystemException):
    """Raised on malformed input such as empty idea content."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(detail)


class DimensionMismatchError(IdeaSystemException):
    """Raised when a vector length differs from the store dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Vector dimension must be {expected}, got {actual}"
        )


class ProviderError(IdeaSystemException):
    """Raised when an AI provider call fails (auth, network, quota, bad response)."""

    def __init__(self, detail: str = "AI provider error", provider: str | None = None):
        self.provider = provider
        super().__init__(f"{provider}: {detail}" if provider else detail)


class PersistenceError(IdeaSystemException):
    """Raised when durable storage cannot be read or written."""

    def __init__(self, detail: str = "Persistence error"):
        super().__init__(detail)
