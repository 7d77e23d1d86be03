"""环节一：测试文件筛选、扫描与源图解码。"""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from PIL import Image

from canvas_bridge.core.exceptions import DecodeFailure, UnsupportedFormat
from canvas_bridge.core.models import InputFile
from canvas_bridge.core.scanner import (
    collect_input_files,
    ensure_accepted,
    filter_accepted,
    is_accepted,
)
from canvas_bridge.processing import image_loader
from canvas_bridge.processing.image_loader import DEFAULT_SVG_SIZE, VectorDrawable, open_source, parse_svg_size

SVG_NS = 'xmlns="http://www.w3.org/2000/svg"'


def require_cairosvg() -> None:
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError):
        pytest.skip("cairosvg / libcairo 不可用")


def png_bytes(size: tuple[int, int] = (16, 16), color: str = "blue", fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.mark.parametrize(
    ("mime_type", "name", "expected"),
    [
        ("image/png", "upload.bin", True),
        ("image/jpg", "upload", True),
        ("image/svg+xml", "drawing", True),
        ("", "Photo.JPG", True),
        ("application/octet-stream", "logo.Svg", True),
        ("image/gif", "anim.gif", False),
        ("text/plain", "notes.txt", False),
        ("", "png", False),
    ],
)
def test_is_accepted_by_type_or_extension(mime_type: str, name: str, expected: bool) -> None:
    assert is_accepted(mime_type, name) is expected


def test_filter_accepted_keeps_order_and_drops_silently() -> None:
    files = [
        InputFile("b.png", "image/png", b"1"),
        InputFile("notes.txt", "text/plain", b"2"),
        InputFile("a.svg", "", b"3"),
        InputFile("anim.gif", "image/gif", b"4"),
    ]

    accepted = filter_accepted(files)

    assert [f.name for f in accepted] == ["b.png", "a.svg"]


def test_ensure_accepted_raises_for_unsupported() -> None:
    with pytest.raises(UnsupportedFormat):
        ensure_accepted(InputFile("anim.gif", "image/gif", b""))


def test_collect_input_files_scans_directories(tmp_path: Path) -> None:
    source = tmp_path / "input"
    nested = source / "nested"
    nested.mkdir(parents=True)

    (source / "B.png").write_bytes(png_bytes())
    (source / "a.jpg").write_bytes(png_bytes(fmt="JPEG"))
    (source / "notes.txt").write_text("hello")
    (nested / "logo.svg").write_text(f"<svg {SVG_NS}/>")

    recursive = collect_input_files([source])
    flat = collect_input_files([source], recursive=False)

    assert [f.name for f in recursive] == ["a.jpg", "B.png", "logo.svg"]
    assert [f.name for f in flat] == ["a.jpg", "B.png"]
    assert recursive[2].mime_type == "image/svg+xml"
    assert recursive[0].data == (source / "a.jpg").read_bytes()


def test_collect_input_files_deduplicates_explicit_files(tmp_path: Path) -> None:
    image = tmp_path / "one.png"
    image.write_bytes(png_bytes())

    files = collect_input_files([image, tmp_path])

    assert [f.name for f in files] == ["one.png"]


@pytest.mark.parametrize(
    ("markup", "expected"),
    [
        (f'<svg {SVG_NS} width="48" height="48"></svg>', (48, 48)),
        (f'<svg {SVG_NS} viewBox="0 0 64 64"></svg>', (64, 64)),
        (f"<svg {SVG_NS}></svg>", (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        ('<svg width="48px" height="32.7"/>', (48, 32)),
        (f'<svg {SVG_NS} width="10" viewBox="0,0,120,30"/>', (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        (f'<svg {SVG_NS} viewBox=" 0 0 64 64"/>', (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        (f'<svg {SVG_NS} viewBox="0 0 64px 64px"/>', (64, 64)),
        (f'<svg {SVG_NS} width="0" height="0" viewBox="0 0 10 10"/>', (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        (f'<svg {SVG_NS} width="-5" height="40"/>', (DEFAULT_SVG_SIZE, 40)),
        (f'<svg {SVG_NS} viewBox="0 0 64"/>', (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        (f'<svg {SVG_NS} width="auto" height="auto" viewBox="0 0 a b"/>', (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        ("<svg width='48' <<<", (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
        ("<html><body>no vector here</body></html>", (DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE)),
    ],
)
def test_parse_svg_size(markup: str, expected: tuple[int, int]) -> None:
    assert parse_svg_size(markup.encode("utf-8")) == expected


def test_open_source_raster_uses_intrinsic_size() -> None:
    candidate = InputFile("photo.jpg", "image/jpeg", png_bytes((80, 40), "red", "JPEG"))

    with open_source(candidate) as source:
        assert (source.width, source.height) == (80, 40)
        assert source.drawable.image.mode == "RGBA"


def test_open_source_applies_exif_orientation() -> None:
    if not hasattr(Image, "Exif"):
        pytest.skip("当前 Pillow 版本不支持写入 EXIF 数据")

    exif = Image.Exif()
    exif[274] = 6  # 顺时针 90 度
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), "red").save(buffer, format="JPEG", exif=exif.tobytes())

    with open_source(InputFile("rotated.jpg", "image/jpeg", buffer.getvalue())) as source:
        assert (source.width, source.height) == (40, 80)


def test_open_source_rejects_corrupt_raster() -> None:
    with pytest.raises(DecodeFailure):
        with open_source(InputFile("broken.png", "image/png", b"not an image")):
            pass


def test_drawable_released_on_error_path() -> None:
    candidate = InputFile("ok.png", "image/png", png_bytes())
    captured = []

    with pytest.raises(RuntimeError):
        with open_source(candidate) as source:
            captured.append(source.drawable)
            raise RuntimeError("boom")

    assert captured[0].released


def test_open_source_svg_dimensions() -> None:
    require_cairosvg()

    sized = f'<svg {SVG_NS} width="48" height="48"><rect width="48" height="48" fill="red"/></svg>'
    boxed = f'<svg {SVG_NS} viewBox="0 0 64 64"><circle cx="32" cy="32" r="30" fill="blue"/></svg>'
    bare = f'<svg {SVG_NS}><rect x="0" y="0" width="10" height="10" fill="green"/></svg>'

    for markup, expected in ((sized, (48, 48)), (boxed, (64, 64)), (bare, (256, 256))):
        candidate = InputFile("icon.svg", "image/svg+xml", markup.encode("utf-8"))
        with open_source(candidate) as source:
            assert (source.width, source.height) == expected
            assert source.drawable.image.size == expected


def test_open_source_svg_render_failure_is_decode_failure() -> None:
    require_cairosvg()

    with pytest.raises(DecodeFailure):
        with open_source(InputFile("broken.svg", "", b"<svg width='48' <<<")):
            pass


def test_vector_drawable_rerenders_at_target_size(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_render(svg_data: bytes, width: int, height: int) -> Image.Image:
        calls.append((svg_data, width, height))
        return Image.new("RGBA", (width, height), (0, 255, 0, 255))

    monkeypatch.setattr(image_loader, "_render_svg", fake_render)
    markup = f'<svg {SVG_NS} width="48" height="48"/>'.encode("utf-8")
    drawable = VectorDrawable(Image.new("RGBA", (48, 48), (255, 0, 0, 255)), markup)

    same = drawable.render(48, 48)
    scaled = drawable.render(32, 16)

    assert calls == [(markup, 32, 16)]
    assert same.getpixel((0, 0)) == (255, 0, 0, 255)
    assert same is not drawable.image
    assert scaled.size == (32, 16)
    assert scaled.getpixel((0, 0)) == (0, 255, 0, 255)
