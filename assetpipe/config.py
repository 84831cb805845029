import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .tools import OPTIMIZERS, RENDERERS

DEFAULT_RENDERERS = ("rsvg-convert", "inkscape")
DEFAULT_RASTER_COMMANDS = ("magick", "convert")
DEFAULT_OPTIMIZERS = ("oxipng", "optipng", "pngcrush")


def _parse_names(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    parts = (p.strip() for p in raw.replace(";", ",").split(","))
    return tuple(p for p in parts if p)


def _parse_size(raw: str) -> tuple[int, int]:
    try:
        w, h = raw.lower().replace(" ", "").split("x")
        size = (int(w), int(h))
    except ValueError:
        raise ValueError(f"Invalid size {raw!r}, expected WIDTHxHEIGHT") from None
    if size[0] <= 0 or size[1] <= 0:
        raise ValueError(f"Invalid size {raw!r}, dimensions must be positive")
    return size


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_dir: Path
    source: Path
    out_dir: Path
    # Parent for the per-run temp dir; None means the system default
    work_root: Path | None = None
    # Search path for tool probing; None means $PATH
    tool_path: str | None = None
    # Logging
    log_file: Path | None = None
    log_level: str = "INFO"
    log_max_bytes: int = 5 * 1024 * 1024
    log_backups: int = 5
    # Tool tables, in priority order
    renderers: tuple[str, ...] = DEFAULT_RENDERERS
    raster_commands: tuple[str, ...] = DEFAULT_RASTER_COMMANDS
    optimizers: tuple[str, ...] = DEFAULT_OPTIMIZERS
    webp_encoder: str = "cwebp"
    archiver: str = "zip"
    # Geometry and quality
    render_size: tuple[int, int] = (1200, 1200)
    hero_size: tuple[int, int] = (1200, 630)
    thumb_size: tuple[int, int] = (640, 640)
    full_size: tuple[int, int] = (1400, 1400)
    crop_quality: int = 95
    webp_quality: int = 85
    command_timeout_sec: int = 120
    # Output names inside out_dir
    hero_name: str = "hero.png"
    thumb_name: str = "thumb.png"
    full_name: str = "full.png"
    webp_name: str = "hero.webp"
    archive_name: str = "assets.zip"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").upper()

    @field_validator("base_dir", "source", "out_dir", mode="before")
    @classmethod
    def _ensure_path(cls, v: Path | str) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("log_file", "work_root", mode="before")
    @classmethod
    def _optional_path(cls, v: str | Path | None) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()

    @field_validator("renderers", "raster_commands", "optimizers", mode="before")
    @classmethod
    def _normalize_names(cls, v: object) -> tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            return _parse_names(v)
        return tuple(str(s).strip() for s in v if str(s).strip())

    @field_validator("renderers")
    @classmethod
    def _known_renderers(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [n for n in v if n not in RENDERERS]
        if unknown:
            raise ValueError(f"Unknown renderer(s): {', '.join(unknown)}")
        return v

    @field_validator("optimizers")
    @classmethod
    def _known_optimizers(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [n for n in v if n not in OPTIMIZERS]
        if unknown:
            raise ValueError(f"Unknown optimizer(s): {', '.join(unknown)}")
        return v

    @field_validator("render_size", "hero_size", "thumb_size", "full_size", mode="before")
    @classmethod
    def _size(cls, v: object) -> object:
        if isinstance(v, str):
            return _parse_size(v)
        return v

    @model_validator(mode="before")
    @classmethod
    def _anchor_paths(cls, data: object) -> object:
        # Relative source/out_dir are resolved against base_dir, never the cwd.
        if not isinstance(data, dict) or "base_dir" not in data:
            return data
        data = dict(data)
        base = Path(data["base_dir"]).expanduser().resolve()
        for key in ("source", "out_dir"):
            if key in data:
                p = Path(data[key]).expanduser()
                data[key] = p if p.is_absolute() else base / p
        return data


def load_settings(default_base_dir: Path | None = None) -> Settings:
    """Read settings from the environment.

    BASE_DIR wins; otherwise default_base_dir, otherwise the current working directory.
    """
    base_dir_raw = os.getenv("BASE_DIR", "").strip()
    if base_dir_raw:
        base_dir = Path(base_dir_raw).expanduser().resolve()
    else:
        base_dir = Path(default_base_dir or ".").expanduser().resolve()

    source = os.getenv("SOURCE_SVG", "assets/logo.svg").strip() or "assets/logo.svg"
    out_dir = os.getenv("OUT_DIR", "dist").strip() or "dist"
    work_root = os.getenv("WORK_ROOT", "").strip() or None
    tool_path = os.getenv("TOOL_PATH", "").strip() or None

    # Logging
    log_file_raw = os.getenv("LOG_FILE", "").strip()
    log_file = Path(log_file_raw).expanduser().resolve() if log_file_raw else None
    log_level = (os.getenv("LOG_LEVEL", "INFO") or "INFO").upper()
    log_max_bytes = int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024)))
    log_backups = int(os.getenv("LOG_BACKUPS", "5"))

    # Tool tables; an empty variable keeps the default ranking
    renderers = _parse_names(os.getenv("RENDERERS")) or DEFAULT_RENDERERS
    raster_commands = _parse_names(os.getenv("RASTER_COMMANDS")) or DEFAULT_RASTER_COMMANDS
    optimizers = _parse_names(os.getenv("OPTIMIZERS")) or DEFAULT_OPTIMIZERS

    try:
        return Settings(
            base_dir=base_dir,
            source=Path(source),
            out_dir=Path(out_dir),
            work_root=work_root,
            tool_path=tool_path,
            log_file=log_file,
            log_level=log_level,
            log_max_bytes=log_max_bytes,
            log_backups=log_backups,
            renderers=renderers,
            raster_commands=raster_commands,
            optimizers=optimizers,
            webp_encoder=os.getenv("WEBP_ENCODER", "cwebp").strip() or "cwebp",
            archiver=os.getenv("ARCHIVER", "zip").strip() or "zip",
            render_size=os.getenv("RENDER_SIZE", "1200x1200"),
            hero_size=os.getenv("HERO_SIZE", "1200x630"),
            thumb_size=os.getenv("THUMB_SIZE", "640x640"),
            full_size=os.getenv("FULL_SIZE", "1400x1400"),
            crop_quality=int(os.getenv("CROP_QUALITY", "95") or 95),
            webp_quality=int(os.getenv("WEBP_QUALITY", "85") or 85),
            command_timeout_sec=int(os.getenv("COMMAND_TIMEOUT_SEC", "120") or 120),
        )
    except ValueError as e:
        # pydantic.ValidationError is a ValueError subclass
        raise RuntimeError(f"Invalid configuration: {e}") from e
