"""输出写入与冲突处理模块。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import count
from pathlib import Path
from typing import Optional

from canvas_bridge.core.config import VALID_CONFLICT_STRATEGIES, OutputConfig
from canvas_bridge.core.exceptions import ArtifactWriteError, InvalidConfigurationError
from canvas_bridge.core.models import OutputArtifact

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DestinationDecision:
    """封装输出文件决策。"""

    destination: Optional[Path]
    action: str
    note: Optional[str] = None


class OutputManager:
    """负责输出目录、冲突策略与产出文件写入。"""

    def __init__(self, config: OutputConfig) -> None:
        if config.conflict_strategy not in VALID_CONFLICT_STRATEGIES:
            raise InvalidConfigurationError(f"未知的冲突策略: {config.conflict_strategy}")
        self.config = config
        self.output_dir = config.output_dir.resolve()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def decide_destination(self, filename: str) -> DestinationDecision:
        """根据冲突策略确定输出路径。"""

        destination = self.output_dir / Path(filename).name
        if not destination.exists():
            return DestinationDecision(destination=destination, action="write")

        strategy = self.config.conflict_strategy
        existing_msg = f"目标已存在: {destination.name}"

        if strategy == "overwrite":
            return DestinationDecision(destination=destination, action="overwrite", note=existing_msg)
        if strategy == "skip":
            return DestinationDecision(destination=None, action="skip", note=existing_msg)

        new_destination = self._generate_renamed_path(destination)
        return DestinationDecision(
            destination=new_destination,
            action="rename",
            note=f"{existing_msg} -> 重命名为 {new_destination.name}",
        )

    def write_artifact(self, artifact: OutputArtifact) -> DestinationDecision:
        """将产出写入输出目录，返回实际采用的决策。"""

        decision = self.decide_destination(artifact.filename)
        if decision.destination is None:
            LOGGER.info("跳过输出（已存在）：%s", artifact.filename)
            return decision

        try:
            decision.destination.write_bytes(artifact.data)
        except OSError as exc:
            raise ArtifactWriteError(f"写入文件失败: {decision.destination}") from exc

        LOGGER.info("已写入 %s (%d 字节)", decision.destination, len(artifact.data))
        return decision

    def _generate_renamed_path(self, destination: Path) -> Path:
        """在 rename 策略下生成新的文件名。"""

        stem = destination.stem
        suffix = destination.suffix

        for idx in count(1):
            candidate = destination.with_name(f"{stem}_{idx}{suffix}")
            if not candidate.exists():
                return candidate

        # 理论上不会执行到此处
        return destination
