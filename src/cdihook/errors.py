"""Error types raised while applying CDI hooks.

Every error carries an ErrorKind so callers can branch on the failure
category, plus the path or plan entry it concerns.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Failure categories."""

    NOT_FOUND = "not_found"
    DECODE = "decode"
    INVALID_LINK = "invalid_link"
    PATH = "path"
    IO = "io"
    SUBPROCESS = "subprocess"


class HookError(Exception):
    """Base class for all hook application failures.

    Attributes:
        kind: Failure category
        path: Filesystem path the failure concerns, if any
        index: Position of the offending symlink entry in the plan, if any
        entry: The offending plan entry, if any
        cause: Underlying exception, if any
    """

    kind: ErrorKind = ErrorKind.IO

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        index: int | None = None,
        entry: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.index = index
        self.entry = entry
        self.cause = cause

    def __str__(self) -> str:
        text = self.message
        if self.path and self.path not in text:
            text = f"{text} at {self.path!r}"
        if self.index is not None:
            text = f"symlink entry #{self.index}: {text}"
        if self.cause is not None:
            text = f"{text}: {self.cause}"
        return text

    def with_entry(self, index: int, entry: Any) -> HookError:
        """Attach the identity of the plan entry being processed."""
        self.index = index
        self.entry = entry
        return self


class HookNotFoundError(HookError):
    """An input file or an expected path does not exist."""

    kind = ErrorKind.NOT_FOUND


class PlanDecodeError(HookError):
    """The hook plan (or config devices file) is malformed."""

    kind = ErrorKind.DECODE


class InvalidLinkError(HookError):
    """A symlink's link path is not absolute."""

    kind = ErrorKind.INVALID_LINK

    def __init__(self, link: str, target: str) -> None:
        super().__init__(f"The link must be an absolute path: {link!r} (target: {target!r})", path=link)
        self.link = link
        self.target = target


class PathResolutionError(HookError):
    """The relative path from a link to its target could not be computed."""

    kind = ErrorKind.PATH


class HookIOError(HookError):
    """A directory or file operation failed."""

    kind = ErrorKind.IO


class LdconfigError(HookError):
    """The linker cache tool failed or could not be started.

    Attributes:
        command: The command line that was run
        returncode: Exit status, or None when the tool never started
        output: Combined stdout/stderr captured from the tool
    """

    kind = ErrorKind.SUBPROCESS

    def __init__(
        self,
        message: str,
        *,
        command: list[str],
        returncode: int | None,
        output: str = "",
        path: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, path=path, cause=cause)
        self.command = command
        self.returncode = returncode
        self.output = output

    def __str__(self) -> str:
        text = super().__str__()
        if self.returncode is not None:
            text = f"{text} (exit status {self.returncode})"
        if self.output.strip():
            text = f"{text}: {self.output.strip()}"
        return text
