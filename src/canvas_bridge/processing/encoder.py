"""画布导出：将 RGBA 画布编码为指定 MIME 类型的字节流。"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, Optional

from PIL import Image, features

from canvas_bridge.core.exceptions import EncodeFailure

LOGGER = logging.getLogger(__name__)

MIME_WEBP = "image/webp"
MIME_PNG = "image/png"
MIME_ICO = "image/x-icon"

SUPPORTED_FORMATS = {
    MIME_WEBP: "WEBP",
    MIME_PNG: "PNG",
}


def encode_surface(surface: Image.Image, mime_type: str, quality: Optional[float] = None) -> bytes:
    """导出画布。quality 取值 [0, 1]，仅作用于 WebP；PNG 为无损导出。"""

    image_format = SUPPORTED_FORMATS.get(mime_type)
    if not image_format:
        raise EncodeFailure(f"不支持的导出格式: {mime_type}")

    save_params: Dict[str, Any] = {}
    if image_format == "WEBP":
        if not features.check("webp"):
            raise EncodeFailure("当前 Pillow 未启用 WebP 编码支持")
        if quality is not None:
            if not 0.0 <= quality <= 1.0:
                raise EncodeFailure(f"quality 超出范围: {quality}")
            save_params["quality"] = int(round(quality * 100))

    buffer = io.BytesIO()
    try:
        surface.save(buffer, format=image_format, **save_params)
    except (OSError, ValueError) as exc:
        raise EncodeFailure(f"画布导出失败: {exc}") from exc

    data = buffer.getvalue()
    if not data:
        raise EncodeFailure("画布导出失败: 结果为空")

    LOGGER.debug("导出 %s: %d 字节", mime_type, len(data))
    return data
