"""编码结果的相似度指标：用于评估有损导出相对画布的损失。"""

from __future__ import annotations

import io
from typing import Tuple

import cv2
import numpy as np
from PIL import Image

from canvas_bridge.core.models import ValidationMetrics

_RESAMPLING = getattr(Image, "Resampling", Image)


def measure_payload(surface: Image.Image, payload: bytes) -> ValidationMetrics:
    """解码导出的字节流，并与原画布比较。"""

    with Image.open(io.BytesIO(payload)) as decoded:
        decoded.load()
        processed = decoded.convert("RGBA")
    try:
        return ValidationMetrics(
            phash_distance=compute_phash_distance(surface, processed),
            ssim=compute_ssim(surface, processed),
        )
    finally:
        processed.close()


def compute_phash_distance(original: Image.Image, processed: Image.Image) -> float:
    """计算两张图片的感知哈希距离（pHash）。"""

    hash_a = _phash(original)
    hash_b = _phash(processed)
    # Hamming distance
    return float(np.count_nonzero(hash_a != hash_b))


def compute_ssim(original: Image.Image, processed: Image.Image) -> float:
    """计算两张图片的全局结构相似度（SSIM）。"""

    size = processed.size
    if size[0] <= 0 or size[1] <= 0:
        return 0.0

    img_a = _to_gray_array(original, size)
    img_b = _to_gray_array(processed, size)

    mu_a = img_a.mean()
    mu_b = img_b.mean()
    sigma_a_sq = ((img_a - mu_a) ** 2).mean()
    sigma_b_sq = ((img_b - mu_b) ** 2).mean()
    sigma_ab = ((img_a - mu_a) * (img_b - mu_b)).mean()

    c1 = (0.01 * 255) ** 2
    c2 = (0.03 * 255) ** 2

    numerator = (2 * mu_a * mu_b + c1) * (2 * sigma_ab + c2)
    denominator = (mu_a**2 + mu_b**2 + c1) * (sigma_a_sq + sigma_b_sq + c2)
    if denominator == 0:
        return 0.0

    return float(max(min(numerator / denominator, 1.0), -1.0))


def _flatten(image: Image.Image) -> Image.Image:
    """透明区域合成到白底后转灰度，避免被 alpha 掩盖的颜色影响结果。"""

    if image.mode in {"RGBA", "LA"}:
        background = Image.new("RGBA", image.size, (255, 255, 255, 255))
        background.alpha_composite(image.convert("RGBA"))
        return background.convert("L")
    return image.convert("L")


def _phash(image: Image.Image) -> np.ndarray:
    resized = _flatten(image).resize((32, 32), _RESAMPLING.LANCZOS)
    array = np.asarray(resized, dtype=np.float32)
    dct = cv2.dct(array)
    low_freq = dct[:8, :8]
    median = np.median(low_freq[1:, 1:])
    return low_freq > median


def _to_gray_array(image: Image.Image, size: Tuple[int, int]) -> np.ndarray:
    resized = _flatten(image).resize(size, _RESAMPLING.LANCZOS)
    return np.asarray(resized, dtype=np.float32)
