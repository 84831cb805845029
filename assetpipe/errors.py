from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .utils import CmdResult, stderr_tail


class PipelineError(RuntimeError):
    """Fatal pipeline failure; exit_code is what the process should exit with."""

    exit_code = 1


class MissingSourceError(PipelineError):
    exit_code = 2

    def __init__(self, source: Path):
        super().__init__(f"Source SVG not found: {source}")
        self.source = source


class NoRendererError(PipelineError):
    exit_code = 3

    def __init__(self, candidates: Sequence[str]):
        super().__init__(
            "No SVG renderer found. Install one of: " + ", ".join(candidates or ["(none configured)"])
        )
        self.candidates = tuple(candidates)


class MissingToolError(PipelineError):
    def __init__(self, role: str, candidates: Sequence[str]):
        super().__init__(f"No {role} found. Install one of: " + ", ".join(candidates))
        self.role = role
        self.candidates = tuple(candidates)


class CommandFailedError(PipelineError):
    def __init__(self, argv: Sequence[str], result: CmdResult):
        msg = f"Command failed with exit code {result.returncode}: {' '.join(argv)}"
        tail = stderr_tail(result)
        if tail:
            msg += f"\n{tail}"
        super().__init__(msg)
        self.argv = list(argv)
        self.result = result
