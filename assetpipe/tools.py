from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from .utils import first_available

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class Renderer:
    """Renders an SVG to a PNG of exactly width x height pixels."""

    name: ClassVar[str]

    def argv(self, exe: Path, source: Path, output: Path, width: int, height: int) -> list[str]:
        raise NotImplementedError


class RsvgConvert(Renderer):
    name = "rsvg-convert"

    def argv(self, exe: Path, source: Path, output: Path, width: int, height: int) -> list[str]:
        # Without --keep-aspect-ratio both dimensions are honoured exactly.
        return [str(exe), "-w", str(width), "-h", str(height), "-o", str(output), str(source)]


class Inkscape(Renderer):
    name = "inkscape"

    def argv(self, exe: Path, source: Path, output: Path, width: int, height: int) -> list[str]:
        return [
            str(exe),
            str(source),
            "--export-type=png",
            f"--export-filename={output}",
            "-w",
            str(width),
            "-h",
            str(height),
        ]


class Optimizer:
    """Lossless in-place PNG optimizer with its most aggressive settings."""

    name: ClassVar[str]
    # Whether a non-zero exit should be logged and ignored instead of aborting the run.
    tolerate_failure: ClassVar[bool] = False

    def argv(self, exe: Path, png: Path) -> list[str]:
        raise NotImplementedError


class Oxipng(Optimizer):
    name = "oxipng"

    def argv(self, exe: Path, png: Path) -> list[str]:
        return [str(exe), "-o", "max", "--strip", "safe", "--alpha", "-Z", str(png)]


class Optipng(Optimizer):
    name = "optipng"

    def argv(self, exe: Path, png: Path) -> list[str]:
        return [str(exe), "-o7", "-strip", "all", "-quiet", str(png)]


class Pngcrush(Optimizer):
    name = "pngcrush"
    # pngcrush exits non-zero on files it cannot shrink further.
    tolerate_failure = True

    def argv(self, exe: Path, png: Path) -> list[str]:
        return [str(exe), "-brute", "-rem", "alla", "-ow", str(png)]


RENDERERS: dict[str, type[Renderer]] = {cls.name: cls for cls in (RsvgConvert, Inkscape)}
OPTIMIZERS: dict[str, type[Optimizer]] = {cls.name: cls for cls in (Oxipng, Optipng, Pngcrush)}


def cover_crop_argv(
    exe: Path, source: Path, output: Path, width: int, height: int, quality: int
) -> list[str]:
    """Scale to cover width x height, crop the centre to exactly that size, strip metadata."""
    geometry = f"{width}x{height}"
    return [
        str(exe),
        str(source),
        "-resize",
        f"{geometry}^",
        "-gravity",
        "center",
        "-extent",
        geometry,
        "-strip",
        "-quality",
        str(quality),
        str(output),
    ]


def trim_argv(exe: Path, image: Path) -> list[str]:
    return [str(exe), str(image), "-trim", "+repage", str(image)]


def webp_argv(exe: Path, source: Path, output: Path, quality: int) -> list[str]:
    return [str(exe), "-quiet", "-q", str(quality), "-m", "6", str(source), "-o", str(output)]


def zip_argv(exe: Path, archive: Path, files: list[Path]) -> list[str]:
    # -j junks directory names so the archive stays flat.
    return [str(exe), "-j", "-9", "-q", str(archive), *(str(f) for f in files)]


@dataclass(frozen=True)
class SelectedTool:
    name: str
    exe: Path


@dataclass(frozen=True)
class Toolset:
    renderer: SelectedTool | None
    raster: SelectedTool | None
    webp: SelectedTool | None
    optimizer: SelectedTool | None
    archiver: SelectedTool | None

    def make_renderer(self) -> Renderer | None:
        if self.renderer is None:
            return None
        return RENDERERS[self.renderer.name]()

    def make_optimizer(self) -> Optimizer | None:
        if self.optimizer is None:
            return None
        return OPTIMIZERS[self.optimizer.name]()


def _select(names: tuple[str, ...] | list[str], search_path: str | None) -> SelectedTool | None:
    found = first_available(names, search_path)
    if found is None:
        return None
    name, exe = found
    return SelectedTool(name=name, exe=exe)


def detect_tools(settings: Settings) -> Toolset:
    """Probe the search path once for every capability the pipeline may use."""
    path = settings.tool_path
    tools = Toolset(
        renderer=_select(settings.renderers, path),
        raster=_select(settings.raster_commands, path),
        webp=_select([settings.webp_encoder], path),
        optimizer=_select(settings.optimizers, path),
        archiver=_select([settings.archiver], path),
    )
    for role, sel in (
        ("renderer", tools.renderer),
        ("raster", tools.raster),
        ("webp", tools.webp),
        ("optimizer", tools.optimizer),
        ("archiver", tools.archiver),
    ):
        if sel is None:
            logger.debug("No %s tool available", role)
        else:
            logger.debug("Using %s for %s: %s", sel.name, role, sel.exe)
    return tools
