"""Exception hierarchy for the studio query layer."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError


class StudioError(Exception):
    """Base class for all studio errors."""


class ValidationError(StudioError):
    """Malformed load options, preview options or filter tree."""

    @classmethod
    def from_pydantic(cls, what: str, error: PydanticValidationError) -> ValidationError:
        """Flatten a pydantic error into a single readable message."""
        details = "; ".join(
            f"{'.'.join(str(p) for p in item['loc']) or '<root>'}: {item['msg']}"
            for item in error.errors()
        )
        return cls(f"Invalid {what}: {details}")


class EmptyLoadError(StudioError):
    """A load produced a staging table with no discoverable columns."""


class CompilationError(StudioError):
    """A filter rule could not be compiled.

    Raised per rule inside the compiler and turned into a match-nothing
    predicate, so it normally never reaches callers.
    """

    def __init__(self, field: str, op: str, reason: str):
        self.field = field
        self.op = op
        self.reason = reason
        super().__init__(f"{field} {op}: {reason}")


class EngineError(StudioError):
    """Failure reported by the embedded engine, wrapped with operation context."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class NotLoadedError(StudioError):
    """No published generation is available to query."""


class CatalogLoadError(StudioError):
    """Error loading a field catalog."""

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")
