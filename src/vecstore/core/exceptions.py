from typing import Optional


class VectorStoreError(Exception):
    """Base class for every error raised by the vector store layer."""

    pass


class ConfigurationError(VectorStoreError):
    """Raised for an invalid record definition, an unsupported type or bad store configuration."""

    pass


class MappingError(VectorStoreError):
    """Raised when a field cannot be serialized to, or deserialized from, its storage form."""

    def __init__(self, field_name: Optional[str], cause: Optional[BaseException] = None, message: str = ""):
        self.field_name = field_name
        self.cause = cause
        detail = message or (str(cause) if cause else "mapping failed")
        super().__init__(f"Failed to map field '{field_name}': {detail}")


class UnsupportedFilterError(VectorStoreError):
    """Raised when a filter clause cannot be expressed by the backend."""

    pass


class UnsupportedQueryError(VectorStoreError):
    """Raised when a search construct cannot be expressed by the backend."""

    pass


class BackendIOError(VectorStoreError):
    """Wraps a driver level failure (connection, malformed statement, protocol error)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause else message)
