"""Error taxonomy for the script obfuscation build.

Every build failure derives from BuildError and aborts the whole run.
The ``stage`` attribute names the pipeline step that failed so the CLI
can report it without parsing messages.
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Base class for failures that abort a build."""

    stage = "build"


class InputNotFoundError(BuildError):
    """The input document does not exist."""

    stage = "input"

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Input not found: {path}")


class InputReadError(BuildError):
    """The input document exists but could not be read as UTF-8 text."""

    stage = "input"

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class NoTransformableContentError(BuildError):
    """The document has no inline script that qualifies for obfuscation."""

    stage = "locate"

    def __init__(
        self, message: str = "No inline <script> blocks found to obfuscate"
    ) -> None:
        super().__init__(message)


class AdapterFailureError(BuildError):
    """The script transformer failed or returned unusable output."""

    stage = "transform"

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Obfuscation failed for script #{index}: {reason}")


class MissingResolvedResultError(BuildError):
    """A placeholder has no transformed payload to put in its place."""

    stage = "reassemble"

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Missing obfuscated output for script #{index}")


class PlaceholderIntegrityError(BuildError):
    """Placeholder markers did not survive encoding as script text."""

    stage = "encode"


class FinisherFailureError(BuildError):
    """Minifying the assembled document failed."""

    stage = "finish"


class OutputWriteError(BuildError):
    """The finished document could not be written."""

    stage = "output"

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")


class ToolInvocationError(Exception):
    """An external command exited non-zero, timed out, or could not start."""

    def __init__(
        self,
        message: str,
        command: list[str],
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    def __str__(self) -> str:
        text = f"{self.args[0]}\n  Command: {' '.join(self.command)}"
        if self.stderr.strip():
            text += f"\n  Stderr: {self.stderr.strip()}"
        return text
