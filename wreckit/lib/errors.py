"""
Error type shared across wreckit.

Every expected failure is a WreckitError tagged with an ErrorKind.
Callers dispatch on `kind` (or the stable `code`), never on subclasses.
"""

from dataclasses import dataclass
from enum import Enum

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AGENT_FAILURE = "agent_failure"
    VCS_FAILURE = "vcs_failure"
    INTERRUPTED = "interrupted"


@dataclass
class WreckitError(Exception):
    """A failure surfaced to the caller with a stable code."""
    kind: ErrorKind
    message: str
    code: str = ""

    def __post_init__(self):
        if not self.code:
            self.code = self.kind.name

    def __str__(self):
        return f"[{self.code}] {self.message}"

    @property
    def exit_code(self) -> int:
        if self.kind is ErrorKind.INTERRUPTED:
            return EXIT_INTERRUPTED
        return EXIT_ERROR


def validation_error(message: str, code: str = "VALIDATION") -> WreckitError:
    return WreckitError(ErrorKind.VALIDATION, message, code)


def not_found(message: str, code: str = "NOT_FOUND") -> WreckitError:
    return WreckitError(ErrorKind.NOT_FOUND, message, code)


def agent_failure(message: str, code: str = "AGENT_FAILED") -> WreckitError:
    return WreckitError(ErrorKind.AGENT_FAILURE, message, code)


def vcs_failure(message: str, code: str = "VCS_FAILED") -> WreckitError:
    return WreckitError(ErrorKind.VCS_FAILURE, message, code)


def interrupted(message: str = "Operation interrupted") -> WreckitError:
    return WreckitError(ErrorKind.INTERRUPTED, message, "INTERRUPTED")


def to_exit_code(error: BaseException | None) -> int:
    """Map an exception (or None) to a process exit code."""
    if error is None:
        return EXIT_OK
    if isinstance(error, KeyboardInterrupt):
        return EXIT_INTERRUPTED
    exit_code = getattr(error, "exit_code", None)
    if isinstance(exit_code, int):
        return exit_code
    return EXIT_ERROR
