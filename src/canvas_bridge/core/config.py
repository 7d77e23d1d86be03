"""转换任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from canvas_bridge.core.exceptions import InvalidConfigurationError

ConversionMode = str  # webp | ico

MODE_WEBP: ConversionMode = "webp"
MODE_ICO: ConversionMode = "ico"
VALID_MODES = (MODE_WEBP, MODE_ICO)

DEFAULT_QUALITY = 0.82
MIN_QUALITY = 0.5
MAX_QUALITY = 1.0
QUALITY_STEP = 0.01

ICON_SIZES = (32, 64, 128, 256)
DEFAULT_ICON_SIZE = 256

VALID_CONFLICT_STRATEGIES = ("overwrite", "skip", "rename")


@dataclass(slots=True, frozen=True)
class ConversionSettings:
    """单次批处理期间固定不变的输出参数。"""

    quality: float = DEFAULT_QUALITY
    icon_size: int = DEFAULT_ICON_SIZE

    def validated(self) -> "ConversionSettings":
        """校验取值范围，并将 quality 对齐到 QUALITY_STEP 步长。"""

        try:
            quality = float(self.quality)
        except (TypeError, ValueError) as exc:
            raise InvalidConfigurationError(f"quality 必须为数字: {self.quality!r}") from exc
        if not MIN_QUALITY <= quality <= MAX_QUALITY:
            raise InvalidConfigurationError(
                f"quality 必须位于 [{MIN_QUALITY}, {MAX_QUALITY}] 区间: {self.quality}"
            )
        if self.icon_size not in ICON_SIZES:
            raise InvalidConfigurationError(
                f"icon_size 必须为 {', '.join(str(s) for s in ICON_SIZES)} 之一: {self.icon_size}"
            )
        steps = round((quality - MIN_QUALITY) / QUALITY_STEP)
        quality = round(MIN_QUALITY + steps * QUALITY_STEP, 2)
        return ConversionSettings(quality=quality, icon_size=int(self.icon_size))


@dataclass(slots=True)
class OutputConfig:
    """输出目录与冲突策略配置。"""

    output_dir: Path
    conflict_strategy: str = "rename"  # overwrite | skip | rename


@dataclass(slots=True)
class ValidationConfig:
    """编码结果与画布对比的指标开关。"""

    enabled: bool = False


def validate_mode(mode: str) -> ConversionMode:
    """规范化并校验输出模式。"""

    normalized = (mode or "").strip().lower()
    if normalized not in VALID_MODES:
        raise InvalidConfigurationError(f"未知的输出模式: {mode}")
    return normalized
