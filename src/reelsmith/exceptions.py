from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable


class ErrorCategory(str, Enum):
    CONFIG = "config"
    DEPENDENCY = "dependency"
    RUNTIME = "runtime"
    PRECONDITION = "precondition"
    ENCODER = "encoder"
    CONCAT = "concat"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.RUNTIME: 1,
    ErrorCategory.CONFIG: 2,
    ErrorCategory.DEPENDENCY: 3,
    ErrorCategory.PRECONDITION: 4,
    ErrorCategory.ENCODER: 5,
    ErrorCategory.CONCAT: 6,
}


@dataclass
class ReelsmithError(Exception):
    """Base exception for Reelsmith with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.RUNTIME
    exit_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def label(self) -> str:
        return {
            ErrorCategory.CONFIG: "Configuration error",
            ErrorCategory.DEPENDENCY: "Dependency error",
            ErrorCategory.RUNTIME: "Runtime error",
            ErrorCategory.PRECONDITION: "Invalid input",
            ErrorCategory.ENCODER: "Encoder error",
            ErrorCategory.CONCAT: "Concatenation error",
        }.get(self.category, "Error")


class DependencyMissingError(ReelsmithError):
    """Raised when a required external dependency is missing."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            exit_code=exit_code,
        )


class ConfigurationError(ReelsmithError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            exit_code=exit_code,
        )


class PreconditionError(ReelsmithError):
    """Raised when words, images or audio handed to the core are unusable."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.PRECONDITION,
            exit_code=exit_code,
        )


class EncoderError(ReelsmithError):
    """Raised when an ffmpeg render invocation exits non-zero.

    `retained` lists temporary artifacts left on disk for inspection.
    """

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
        retained: Iterable[Path] = (),
        exit_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.ENCODER,
            exit_code=exit_code,
        )
        self.returncode = returncode
        self.stderr = stderr
        self.retained = list(retained)


class EncoderMemoryError(EncoderError):
    """Raised when ffmpeg was killed for running out of memory."""


class ConcatenationError(ReelsmithError):
    """Raised when the lossless chunk concatenation fails.

    The concat list file is never deleted in this case.
    """

    def __init__(
        self,
        message: str,
        *,
        list_path: Path | None = None,
        retained: Iterable[Path] = (),
        exit_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONCAT,
            exit_code=exit_code,
        )
        self.list_path = list_path
        self.retained = list(retained)


class RenderIOError(ReelsmithError):
    """Raised when writing a render artifact fails (disk full, permissions).

    `retained` lists temporary artifacts left on disk for inspection.
    """

    def __init__(
        self,
        message: str,
        *,
        retained: Iterable[Path] = (),
        exit_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.RUNTIME,
            exit_code=exit_code,
        )
        self.retained = list(retained)
