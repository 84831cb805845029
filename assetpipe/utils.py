from __future__ import annotations

import asyncio
import shutil
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


@dataclass
class CmdResult:
    returncode: int
    stdout: bytes
    stderr: bytes


Runner = Callable[[Sequence[str], float], Awaitable[CmdResult]]


async def run_cmd(argv: Sequence[str], timeout_sec: float = 120) -> CmdResult:
    """Run an external command (no shell) with timeout, returning stdout/stderr as bytes.

    A command that does not finish in time is killed and reported with returncode 124.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        proc.kill()
        try:
            await proc.wait()
        except ProcessLookupError:
            pass
        return CmdResult(
            returncode=124, stdout=b"", stderr=f"Timeout after {timeout_sec}s".encode()
        )

    return CmdResult(returncode=proc.returncode or 0, stdout=stdout or b"", stderr=stderr or b"")


def find_executable(name: str, search_path: str | None = None) -> Path | None:
    found = shutil.which(name, path=search_path)
    return Path(found) if found else None


def first_available(
    names: Sequence[str], search_path: str | None = None
) -> tuple[str, Path] | None:
    """Return (name, executable) for the first name found on the search path, else None."""
    for name in names:
        exe = find_executable(name, search_path)
        if exe is not None:
            return name, exe
    return None


def stderr_tail(result: CmdResult, max_chars: int = 500) -> str:
    text = result.stderr.decode("utf-8", errors="replace").strip()
    if len(text) <= max_chars:
        return text
    return "..." + text[-max_chars:]


def human_bytes(n: int) -> str:
    step = 1024.0
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    v = float(n)
    while v >= step and i < len(units) - 1:
        v /= step
        i += 1
    return f"{v:.2f} {units[i]}"
