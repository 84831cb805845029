from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

from assetpipe.config import Settings, load_settings
from assetpipe.errors import PipelineError
from assetpipe.pipeline import run_pipeline


def _setup_logging(settings: Settings) -> None:
    # Console always; optional rotating file
    log_format = "%(asctime)s %(levelname)s %(name)s %(message)s"
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=log_format)
    if settings.log_file:
        try:
            settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backups,
                encoding="utf-8",
            )
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(log_format))
            root = logging.getLogger()
            root.addHandler(fh)
        except OSError:
            logging.exception("Failed to set up file logging")


async def main(default_base_dir: Path | None = None) -> int:
    # Load .env if present
    load_dotenv()

    settings = load_settings(default_base_dir)
    _setup_logging(settings)

    logging.info("Building assets from %s into %s", settings.source, settings.out_dir)
    try:
        result = await run_pipeline(settings)
    except PipelineError as e:
        logging.error("%s", e)
        return e.exit_code

    logging.info("Done: %s", result.archive)
    return 0


def cli(default_base_dir: Path | None = None) -> None:
    try:
        code = asyncio.run(main(default_base_dir))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    # Run from a checkout: paths are relative to this file, not the cwd.
    cli(Path(__file__).resolve().parent)
