"""源文件解码：位图由 Pillow 读取，SVG 由 cairosvg 渲染。"""

from __future__ import annotations

import io
import logging
import math
import re
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from canvas_bridge.core.exceptions import DecodeFailure
from canvas_bridge.core.models import InputFile, SourceImage
from canvas_bridge.core.scanner import is_svg

LOGGER = logging.getLogger(__name__)

_RESAMPLING = getattr(Image, "Resampling", Image)

DEFAULT_SVG_SIZE = 256

_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_VIEWBOX_SPLIT_RE = re.compile(r"\s+")


class Drawable:
    """可绘制源：按任意目标尺寸产出 RGBA 图像。"""

    def __init__(self, image: Image.Image) -> None:
        self._image: Optional[Image.Image] = image

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise ValueError("drawable 已释放")
        return self._image

    @property
    def released(self) -> bool:
        return self._image is None

    def render(self, width: int, height: int) -> Image.Image:
        """返回恰好为 width × height 的新图像（拉伸填充，不保持比例）。"""

        image = self.image
        if image.size == (width, height):
            return image.copy()
        return image.resize((width, height), _RESAMPLING.LANCZOS)

    def release(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None


class VectorDrawable(Drawable):
    """SVG 源：缩放时按目标尺寸重新渲染矢量内容。"""

    def __init__(self, image: Image.Image, svg_data: bytes) -> None:
        super().__init__(image)
        self._svg_data = svg_data

    def render(self, width: int, height: int) -> Image.Image:
        image = self.image
        if image.size == (width, height):
            return image.copy()
        return _render_svg(self._svg_data, width, height)


@contextmanager
def open_source(candidate: InputFile) -> Iterator[SourceImage]:
    """解码输入文件；退出时无论成功与否都会释放底层图像。"""

    if is_svg(candidate):
        width, height = parse_svg_size(candidate.data)
        drawable: Drawable = VectorDrawable(_render_svg(candidate.data, width, height), candidate.data)
    else:
        drawable = Drawable(_load_raster(candidate))
        width, height = drawable.image.size

    try:
        yield SourceImage(drawable=drawable, width=width, height=height)
    finally:
        drawable.release()


def _load_raster(candidate: InputFile) -> Image.Image:
    """读取位图并执行 EXIF 旋转，统一为 RGBA。"""

    try:
        with Image.open(io.BytesIO(candidate.data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGBA":
                img = img.convert("RGBA")
            return img.copy()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", candidate.name, exc)
        raise DecodeFailure(f"无法加载图像: {candidate.name}") from exc


def _render_svg(svg_data: bytes, width: int, height: int) -> Image.Image:
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        raise DecodeFailure("SVG 渲染组件不可用 (cairosvg/cairo)") from exc

    try:
        png_bytes = cairosvg.svg2png(
            bytestring=svg_data,
            output_width=width,
            output_height=height,
            parent_width=width,
            parent_height=height,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.debug("SVG 渲染失败: %s", exc)
        raise DecodeFailure(f"SVG 渲染失败: {exc}") from exc

    try:
        with Image.open(io.BytesIO(png_bytes)) as rendered:
            rendered.load()
            converted = rendered.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise DecodeFailure("SVG 渲染结果无法读取") from exc

    if converted.size != (width, height):
        converted = converted.resize((width, height), _RESAMPLING.LANCZOS)
    return converted


def parse_svg_size(svg_data: bytes | str) -> Tuple[int, int]:
    """推断 SVG 的像素尺寸。

    优先使用根元素的 width/height，其次 viewBox 的第 3、4 项，
    都不可用（包括无法解析的标记）时退回 256×256。
    解析得到的 0 或负值按维度单独退回 256。
    """

    try:
        root = ET.fromstring(svg_data)
    except ET.ParseError as exc:
        LOGGER.debug("SVG 标记无法解析，使用默认尺寸: %s", exc)
        return DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE

    svg = _find_svg_element(root)
    if svg is None:
        return DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE

    width = _parse_leading_number(svg.get("width"))
    height = _parse_leading_number(svg.get("height"))
    if width is not None and height is not None:
        return _to_pixels(width), _to_pixels(height)

    view_box = _parse_view_box(svg.get("viewBox"))
    if view_box is not None:
        return _to_pixels(view_box[2]), _to_pixels(view_box[3])

    return DEFAULT_SVG_SIZE, DEFAULT_SVG_SIZE


def _find_svg_element(root: ET.Element) -> Optional[ET.Element]:
    for element in root.iter():
        if _local_name(element.tag) == "svg":
            return element
    return None


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _parse_leading_number(value: Optional[str]) -> Optional[float]:
    """仿照 parseFloat 读取前导数字，接受任意有限值（含 0 与负数）。"""

    if not value:
        return None
    match = _LEADING_NUMBER_RE.match(value)
    if not match:
        return None
    number = float(match.group(1))
    if not math.isfinite(number):
        return None
    return number


def _parse_view_box(value: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    """按空白切分 viewBox，要求恰好 4 项且每项都能读出前导数字。"""

    if not value:
        return None
    # 首尾空白产生空项，视为无效。
    parts = _VIEWBOX_SPLIT_RE.split(value)
    if len(parts) != 4:
        return None
    numbers = [_parse_leading_number(part) for part in parts]
    if any(number is None for number in numbers):
        return None
    return numbers[0], numbers[1], numbers[2], numbers[3]  # type: ignore[return-value]


def _to_pixels(value: float) -> int:
    pixels = int(value)
    return pixels if pixels > 0 else DEFAULT_SVG_SIZE
