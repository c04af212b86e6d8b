from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    FORMAT = "format"
    DEPENDENCY = "dependency"
    ENCODE = "encode"
    IO = "io"
    CAPACITY = "capacity"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.ENCODE: 1,
    ErrorCategory.VALIDATION: 2,
    ErrorCategory.DEPENDENCY: 3,
    ErrorCategory.FORMAT: 4,
    ErrorCategory.IO: 5,
    ErrorCategory.CAPACITY: 6,
}


@dataclass
class CaptionBurnError(Exception):
    """Base exception for CaptionBurn with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.ENCODE
    exit_code: int | None = None
    detail: str | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def label(self) -> str:
        return {
            ErrorCategory.VALIDATION: "Invalid input",
            ErrorCategory.FORMAT: "Format error",
            ErrorCategory.DEPENDENCY: "Encoder unavailable",
            ErrorCategory.ENCODE: "Encode failed",
            ErrorCategory.IO: "I/O error",
            ErrorCategory.CAPACITY: "Server busy",
        }.get(self.category, "Error")

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "category": self.category.value,
            "detail": self.detail,
        }


class ValidationError(CaptionBurnError):
    """Raised when segment timing or style values are out of contract."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.VALIDATION, detail=detail)


class InvalidRequest(ValidationError):
    """Raised when a render request is missing parts or has nothing to render."""


class FormatError(CaptionBurnError):
    """Raised when an encoder receives a malformed style value (e.g. a bad hex color)."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.FORMAT, detail=detail)


class EncoderUnavailable(CaptionBurnError):
    """Raised when the external video encoder binary cannot be found or started."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            exit_code=exit_code,
        )


class EncodeFailed(CaptionBurnError):
    """Raised when the external encoder ran but did not produce a video."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.ENCODE,
            detail=stderr.strip() or None,
        )
        self.returncode = returncode
        self.stderr = stderr


class EncodeTimeout(EncodeFailed):
    """Raised when the external encoder exceeds its deadline and is killed."""


class WorkspaceIOError(CaptionBurnError):
    """Raised when a job workspace cannot be created, written or read."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.IO, detail=detail)


class RenderBusy(CaptionBurnError):
    """Raised when no render slot frees up within the admission timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=ErrorCategory.CAPACITY)
