from __future__ import annotations

import zipfile
from collections.abc import Sequence
from pathlib import Path

import pytest

from assetpipe.config import Settings
from assetpipe.utils import CmdResult

ALL_TOOLS = (
    "rsvg-convert",
    "inkscape",
    "magick",
    "convert",
    "cwebp",
    "oxipng",
    "optipng",
    "pngcrush",
    "zip",
)

ENV_KEYS = (
    "BASE_DIR",
    "SOURCE_SVG",
    "OUT_DIR",
    "WORK_ROOT",
    "TOOL_PATH",
    "RENDERERS",
    "RASTER_COMMANDS",
    "OPTIMIZERS",
    "WEBP_ENCODER",
    "ARCHIVER",
    "RENDER_SIZE",
    "HERO_SIZE",
    "THUMB_SIZE",
    "FULL_SIZE",
    "CROP_QUALITY",
    "WEBP_QUALITY",
    "COMMAND_TIMEOUT_SEC",
    "LOG_FILE",
    "LOG_LEVEL",
    "LOG_MAX_BYTES",
    "LOG_BACKUPS",
)


class FakeRunner:
    """Stands in for run_cmd: records argv and writes the file each tool would produce."""

    def __init__(self, exit_codes: dict[str, int] | None = None):
        self.calls: list[list[str]] = []
        self.exit_codes = exit_codes or {}

    def tools_called(self) -> list[str]:
        return [Path(argv[0]).name for argv in self.calls]

    async def __call__(self, argv: Sequence[str], timeout_sec: float) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        tool = Path(argv[0]).name
        code = self.exit_codes.get(tool, 0)
        if code:
            return CmdResult(returncode=code, stdout=b"", stderr=f"{tool} failed".encode())

        if tool in ("rsvg-convert", "cwebp"):
            Path(argv[argv.index("-o") + 1]).write_bytes(tool.encode())
        elif tool == "inkscape":
            out = next(a for a in argv if a.startswith("--export-filename="))
            Path(out.split("=", 1)[1]).write_bytes(b"inkscape")
        elif tool in ("magick", "convert"):
            Path(argv[-1]).write_bytes(b"raster")
        elif tool == "zip":
            archive, files = Path(argv[4]), argv[5:]
            with zipfile.ZipFile(archive, "w") as zf:
                for f in files:
                    zf.write(f, arcname=Path(f).name)
        return CmdResult(returncode=0, stdout=b"", stderr=b"")


def make_bin(directory: Path, names: Sequence[str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        exe = directory / name
        exe.write_text("#!/bin/sh\nexit 0\n")
        exe.chmod(0o755)
    return directory


def mk_settings(tmp_path: Path, tools: Sequence[str] = ALL_TOOLS, **overrides) -> Settings:
    bin_dir = make_bin(tmp_path / "bin", tools)
    fields = dict(
        base_dir=tmp_path,
        source="assets/logo.svg",
        out_dir="dist",
        work_root=tmp_path / "work",
        tool_path=str(bin_dir),
    )
    fields.update(overrides)
    return Settings(**fields)


@pytest.fixture
def source_svg(tmp_path: Path) -> Path:
    svg = tmp_path / "assets" / "logo.svg"
    svg.parent.mkdir(parents=True)
    svg.write_text('<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"/>')
    return svg


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
