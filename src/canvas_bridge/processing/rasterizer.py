"""离屏画布：按目标分辨率分配像素缓冲并绘制源图。"""

from __future__ import annotations

import logging

from PIL import Image

from canvas_bridge.core.exceptions import EncodeFailure
from canvas_bridge.core.models import SourceImage

LOGGER = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def rasterize(source: SourceImage, width: int, height: int) -> Image.Image:
    """在透明 RGBA 画布上拉伸绘制源图，尺寸精确为 width × height。"""

    if width <= 0 or height <= 0:
        raise EncodeFailure(f"画布尺寸不合法: {width}x{height}")

    surface = Image.new("RGBA", (width, height), TRANSPARENT)
    drawn = source.drawable.render(width, height)
    try:
        surface.alpha_composite(drawn)
    finally:
        drawn.close()

    LOGGER.debug("绘制 %sx%s -> %sx%s", source.width, source.height, width, height)
    return surface
