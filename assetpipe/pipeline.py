"""Asset pipeline: SVG -> hero/thumbnail/full PNGs (+WebP) -> optimized -> zipped.

Every image operation is delegated to an external tool chosen by ``detect_tools``;
this module only sequences them and decides which failures are fatal.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .errors import CommandFailedError, MissingSourceError, MissingToolError, NoRendererError
from .packager import move_into, write_flat_zip
from .tools import (
    SelectedTool,
    Toolset,
    cover_crop_argv,
    detect_tools,
    trim_argv,
    webp_argv,
    zip_argv,
)
from .utils import Runner, human_bytes, run_cmd, stderr_tail

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    hero: Path
    thumbnail: Path
    full: Path
    webp: Path | None
    archive: Path
    optimizer: str | None = None

    def images(self) -> list[Path]:
        files = [self.hero, self.thumbnail, self.full]
        if self.webp is not None:
            files.append(self.webp)
        return files


class Pipeline:
    def __init__(self, settings: Settings, tools: Toolset, runner: Runner = run_cmd):
        self.settings = settings
        self.tools = tools
        self.runner = runner

    async def _run(self, argv: Sequence[str], *, tolerate_failure: bool = False) -> bool:
        """Run one command. Non-zero exit raises unless tolerate_failure; returns success."""
        logger.debug("Running: %s", " ".join(argv))
        res = await self.runner(argv, self.settings.command_timeout_sec)
        if res.returncode == 0:
            return True
        if tolerate_failure:
            logger.warning(
                "Ignoring exit code %s from %s: %s",
                res.returncode,
                Path(argv[0]).name,
                stderr_tail(res) or "(no output)",
            )
            return False
        raise CommandFailedError(argv, res)

    def _raster(self) -> SelectedTool:
        if self.tools.raster is None:
            raise MissingToolError("raster image processor", self.settings.raster_commands)
        return self.tools.raster

    async def render(self, output: Path, size: tuple[int, int]) -> Path:
        renderer = self.tools.make_renderer()
        if renderer is None or self.tools.renderer is None:
            raise NoRendererError(self.settings.renderers)
        argv = renderer.argv(self.tools.renderer.exe, self.settings.source, output, *size)
        await self._run(argv)
        return output

    async def cover_crop(self, source: Path, output: Path, size: tuple[int, int]) -> Path:
        raster = self._raster()
        await self._run(
            cover_crop_argv(raster.exe, source, output, *size, self.settings.crop_quality)
        )
        return output

    async def trim(self, image: Path) -> Path:
        await self._run(trim_argv(self._raster().exe, image))
        return image

    async def to_webp(self, source: Path, output: Path) -> Path | None:
        if self.tools.webp is None:
            logger.warning(
                "WebP encoder %r not found; skipping %s", self.settings.webp_encoder, output.name
            )
            if output.exists():
                # Left over from an earlier run; it no longer matches hero.png.
                logger.info("Removing stale %s", output)
                output.unlink()
            return None
        await self._run(webp_argv(self.tools.webp.exe, source, output, self.settings.webp_quality))
        return output

    async def optimize(self, images: Sequence[Path]) -> str | None:
        optimizer = self.tools.make_optimizer()
        if optimizer is None or self.tools.optimizer is None:
            logger.info(
                "No PNG optimizer found (tried %s); skipping optimization",
                ", ".join(self.settings.optimizers) or "none",
            )
            return None
        for png in images:
            before = png.stat().st_size if png.exists() else 0
            await self._run(
                optimizer.argv(self.tools.optimizer.exe, png),
                tolerate_failure=optimizer.tolerate_failure,
            )
            if png.exists():
                logger.debug(
                    "%s: %s -> %s",
                    png.name,
                    human_bytes(before),
                    human_bytes(png.stat().st_size),
                )
        return optimizer.name

    async def package(self, files: Sequence[Path], work_dir: Path) -> Path:
        staged = work_dir / self.settings.archive_name
        if self.tools.archiver is not None:
            await self._run(zip_argv(self.tools.archiver.exe, staged, list(files)))
        else:
            logger.info(
                "Archiver %r not found; writing %s with zipfile",
                self.settings.archiver,
                staged.name,
            )
            write_flat_zip(staged, files)
        return move_into(staged, self.settings.out_dir)

    async def run(self, work_dir: Path) -> PipelineResult:
        s = self.settings
        s.out_dir.mkdir(parents=True, exist_ok=True)

        hero = s.out_dir / s.hero_name
        thumb = s.out_dir / s.thumb_name
        full = s.out_dir / s.full_name

        logger.info("Rendering hero %dx%d", *s.hero_size)
        hero_render = await self.render(work_dir / "hero_render.png", s.render_size)
        await self.cover_crop(hero_render, hero, s.hero_size)

        logger.info("Rendering thumbnail %dx%d", *s.thumb_size)
        thumb_render = await self.render(work_dir / "thumb_render.png", s.render_size)
        await self.cover_crop(thumb_render, thumb, s.thumb_size)

        logger.info("Rendering full %dx%d", *s.full_size)
        await self.render(full, s.full_size)
        await self.trim(full)

        webp = await self.to_webp(hero, s.out_dir / s.webp_name)
        optimizer = await self.optimize([hero, thumb, full])

        images = [hero, thumb, full]
        if webp is not None:
            images.append(webp)
        archive = await self.package(images, work_dir)
        return PipelineResult(
            hero=hero, thumbnail=thumb, full=full, webp=webp, archive=archive, optimizer=optimizer
        )


def validate_source(settings: Settings) -> None:
    if not settings.source.is_file():
        raise MissingSourceError(settings.source)


async def run_pipeline(
    settings: Settings,
    runner: Runner = run_cmd,
    tools: Toolset | None = None,
) -> PipelineResult:
    """Run the whole pipeline once. Raises PipelineError subclasses on fatal failures."""
    validate_source(settings)

    if tools is None:
        tools = detect_tools(settings)
    if tools.renderer is None:
        raise NoRendererError(settings.renderers)
    logger.info("Using renderer %s (%s)", tools.renderer.name, tools.renderer.exe)

    if settings.work_root is not None:
        settings.work_root.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(prefix="assetpipe_", dir=settings.work_root) as tmp:
        logger.debug("Working directory: %s", tmp)
        result = await Pipeline(settings, tools, runner).run(Path(tmp))

    for path in [*result.images(), result.archive]:
        logger.info("Wrote %s (%s)", path, human_bytes(path.stat().st_size))
    return result
