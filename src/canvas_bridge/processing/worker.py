"""单个条目的完整转换流程：解码 → 绘制 → 编码 → （可选）ICO 封装。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from canvas_bridge.core.config import MODE_WEBP, ConversionMode
from canvas_bridge.core.models import InputFile, OutputArtifact, ValidationMetrics, base_name
from canvas_bridge.processing.encoder import MIME_ICO, MIME_PNG, MIME_WEBP, encode_surface
from canvas_bridge.processing.icon_container import build_icon_container
from canvas_bridge.processing.image_loader import open_source
from canvas_bridge.processing.rasterizer import rasterize
from canvas_bridge.processing.validation import measure_payload

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ConversionTask:
    """描述单个文件的转换任务。"""

    source: InputFile
    mode: ConversionMode
    quality: float
    icon_size: int
    validate: bool = False


@dataclass(slots=True)
class TaskOutput:
    artifact: OutputArtifact
    metrics: Optional[ValidationMetrics] = None


def run_task(task: ConversionTask) -> TaskOutput:
    """执行转换。mode 由调用方校验，非 webp 即按 ico 处理。失败时抛出 DecodeFailure / EncodeFailure / ContainerBuildFailure。"""

    stem = base_name(task.source.name)

    with open_source(task.source) as source:
        if task.mode == MODE_WEBP:
            surface = rasterize(source, source.width, source.height)
            try:
                data = encode_surface(surface, MIME_WEBP, task.quality)
                metrics = _measure(task, surface, data)
            finally:
                surface.close()
            return TaskOutput(
                artifact=OutputArtifact(filename=f"{stem}.webp", data=data, mime_type=MIME_WEBP),
                metrics=metrics,
            )

        surface = rasterize(source, task.icon_size, task.icon_size)
        try:
            png_data = encode_surface(surface, MIME_PNG)
            metrics = _measure(task, surface, png_data)
        finally:
            surface.close()
        data = build_icon_container(png_data, task.icon_size)
        return TaskOutput(
            artifact=OutputArtifact(filename=f"{stem}.ico", data=data, mime_type=MIME_ICO),
            metrics=metrics,
        )


def _measure(task: ConversionTask, surface: Image.Image, payload: bytes) -> Optional[ValidationMetrics]:
    if not task.validate:
        return None
    try:
        return measure_payload(surface, payload)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("相似度计算失败 %s: %s", task.source.name, exc)
        return None
