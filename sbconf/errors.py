"""Exception types shared by the document core, workspace and service layers."""

from __future__ import annotations


class SbconfError(Exception):
    """Base class for expected failures reported to the caller."""


class InvalidDocument(SbconfError, ValueError):
    """Document bytes cannot be scanned, or the top level is not an object where one is required."""

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)


class PathNotFound(SbconfError, LookupError):
    """A resolved path does not exist in the document."""

    def __init__(self, symbolic_path: str, resolved_path: str | None = None) -> None:
        self.symbolic_path = symbolic_path
        self.resolved_path = resolved_path if resolved_path is not None else symbolic_path
        super().__init__(f"Path '{self.symbolic_path}' (resolved to '{self.resolved_path}') does not exist")


class MalformedPath(SbconfError, ValueError):
    """The accessor rejects the path syntax."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed path '{path}': {reason}")


class WriteFailure(SbconfError, RuntimeError):
    """A raw or escaped write could not be applied or persisted."""


class PersistFailure(WriteFailure):
    """Updated bytes could not be written to storage."""


class NoActiveDirectory(SbconfError):
    """No configuration directory has been selected."""


class InvalidDirectory(SbconfError, ValueError):
    """A directory does not exist or cannot be listed."""


class InvalidFilename(SbconfError, ValueError):
    """A filename is empty, of the wrong type, escapes the directory, or does not exist."""


class ServiceError(SbconfError, RuntimeError):
    """An external sing-box / systemctl invocation failed."""

    def __init__(self, message: str, *, output: str = "") -> None:
        self.output = output
        super().__init__(message)
