from pathlib import Path

from conftest import mk_settings

from assetpipe.tools import (
    Inkscape,
    Optipng,
    Oxipng,
    Pngcrush,
    RsvgConvert,
    Toolset,
    cover_crop_argv,
    detect_tools,
    trim_argv,
    zip_argv,
)

SRC = Path("/in/logo.svg")
OUT = Path("/out/x.png")


def test_renderers_request_exact_dimensions():
    rsvg = RsvgConvert().argv(Path("/bin/rsvg-convert"), SRC, OUT, 1200, 1200)
    assert rsvg == ["/bin/rsvg-convert", "-w", "1200", "-h", "1200", "-o", "/out/x.png", "/in/logo.svg"]

    ink = Inkscape().argv(Path("/bin/inkscape"), SRC, OUT, 1400, 1400)
    assert ink[1] == "/in/logo.svg"
    assert "--export-filename=/out/x.png" in ink
    assert ink[ink.index("-w") + 1] == "1400"
    assert ink[ink.index("-h") + 1] == "1400"


def test_cover_crop_geometry():
    argv = cover_crop_argv(Path("/bin/magick"), Path("/tmp/r.png"), OUT, 1200, 630, 95)
    assert argv[argv.index("-resize") + 1] == "1200x630^"
    assert argv[argv.index("-gravity") + 1] == "center"
    assert argv[argv.index("-extent") + 1] == "1200x630"
    assert "-strip" in argv
    assert argv[argv.index("-quality") + 1] == "95"
    assert argv[1] == "/tmp/r.png" and argv[-1] == "/out/x.png"


def test_trim_is_in_place():
    assert trim_argv(Path("/bin/convert"), OUT) == [
        "/bin/convert",
        "/out/x.png",
        "-trim",
        "+repage",
        "/out/x.png",
    ]


def test_zip_is_flat():
    argv = zip_argv(Path("/bin/zip"), Path("/tmp/a.zip"), [Path("/d/hero.png"), Path("/d/thumb.png")])
    assert argv[1] == "-j"
    assert argv[4:] == ["/tmp/a.zip", "/d/hero.png", "/d/thumb.png"]


def test_optimizer_flags_and_tolerance():
    png = Path("/d/hero.png")
    assert Oxipng().argv(Path("oxipng"), png)[1:3] == ["-o", "max"]
    assert "-o7" in Optipng().argv(Path("optipng"), png)
    crush = Pngcrush().argv(Path("pngcrush"), png)
    assert "-brute" in crush and "-ow" in crush
    assert Pngcrush.tolerate_failure
    assert not Oxipng.tolerate_failure and not Optipng.tolerate_failure


def test_detect_tools_prefers_ranked_names(tmp_path: Path):
    s = mk_settings(tmp_path, tools=("inkscape", "rsvg-convert", "convert", "magick", "optipng"))
    tools = detect_tools(s)
    assert tools.renderer.name == "rsvg-convert"
    assert tools.raster.name == "magick"
    assert tools.optimizer.name == "optipng"
    assert tools.webp is None and tools.archiver is None
    assert isinstance(tools.make_renderer(), RsvgConvert)
    assert isinstance(tools.make_optimizer(), Optipng)


def test_detect_tools_uses_configured_ranking(tmp_path: Path):
    s = mk_settings(
        tmp_path,
        renderers=("inkscape", "rsvg-convert"),
        raster_commands=("convert", "magick"),
        optimizers=("pngcrush", "oxipng"),
    )
    tools = detect_tools(s)
    assert tools.renderer.name == "inkscape"
    assert tools.raster.name == "convert"
    assert tools.optimizer.name == "pngcrush"
    assert tools.raster.exe == tmp_path / "bin" / "convert"


def test_empty_toolset_makes_nothing():
    tools = Toolset(renderer=None, raster=None, webp=None, optimizer=None, archiver=None)
    assert tools.make_renderer() is None
    assert tools.make_optimizer() is None
