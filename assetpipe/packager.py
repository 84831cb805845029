from __future__ import annotations

import logging
import shutil
import zipfile
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def write_flat_zip(archive: Path, files: Sequence[Path]) -> Path:
    """Write files into a deflated zip with bare file names (no directories)."""
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for f in files:
            zf.write(f, arcname=f.name)
    return archive


def move_into(archive: Path, out_dir: Path) -> Path:
    """Move archive into out_dir, replacing a previous archive of the same name."""
    dest = out_dir / archive.name
    # shutil.move overwrites dest itself, so a failed move keeps the previous archive.
    shutil.move(str(archive), str(dest))
    logger.debug("Moved %s -> %s", archive, dest)
    return dest
