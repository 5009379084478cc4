class SchemaError(Exception):
    """Base class for failures that abort a schema query."""


class SourceConnectionError(SchemaError):
    """The descriptor source could not be reached."""

    def __init__(self, address, reason=None):
        self.address = address
        self.reason = reason
        message = f"Could not connect to server at '{address}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ReflectionError(SchemaError):
    """The server failed a reflection request needed to list services."""
