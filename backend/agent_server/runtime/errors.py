"""
Agent Server error taxonomy.

Every failure surfaced to the client maps to one of these classes. The
message handler and HTTP handlers turn them into a JSON ``error`` event or
an HTTP error status; none of them is retried.
"""

from typing import Optional


class AgentServerError(Exception):
    """Base class for all relay errors."""


class ConnectionRejected(AgentServerError):
    """A second client tried to connect while one is already live."""

    def __init__(self, message: str = "Server already has an active connection"):
        super().__init__(message)


class MalformedMessage(AgentServerError):
    """An inbound frame could not be parsed into a known command."""


class SessionFailure(AgentServerError):
    """The agent query session raised; forwarding stops for good."""


class FileOperationFailure(AgentServerError):
    """A file command failed (missing path, permission denied, bad payload)."""

    VERBS = {
        "create_file": "create",
        "read_file": "read",
        "delete_file": "delete",
        "list_files": "list",
    }

    def __init__(self, operation: str, reason: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.reason = reason
        self.cause = cause
        verb = self.VERBS.get(operation, operation)
        noun = "files" if operation == "list_files" else "file"
        super().__init__(f"Failed to {verb} {noun}: {reason}")


class ConfigInvalid(AgentServerError):
    """The /config body was not a JSON object."""

    def __init__(self, message: str = "Invalid JSON"):
        super().__init__(message)
