"""核心数据模型定义。"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from canvas_bridge.core.config import ConversionMode
from canvas_bridge.core.exceptions import InvalidTransitionError

if TYPE_CHECKING:
    from canvas_bridge.processing.image_loader import Drawable


class ItemStatus(str, Enum):
    """单个转换条目的状态。"""

    READY = "ready"
    WORKING = "working"
    DONE = "done"
    ERROR = "error"

    def can_transition_to(self, target: "ItemStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    ItemStatus.READY: frozenset({ItemStatus.WORKING}),
    ItemStatus.WORKING: frozenset({ItemStatus.DONE, ItemStatus.ERROR}),
    ItemStatus.DONE: frozenset(),
    ItemStatus.ERROR: frozenset(),
}


@dataclass(slots=True, frozen=True)
class InputFile:
    """待转换的输入文件描述：声明的 MIME 类型、文件名与内容。"""

    name: str
    mime_type: str
    data: bytes

    @classmethod
    def from_path(cls, path: Path) -> "InputFile":
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, mime_type=guessed or "", data=path.read_bytes())


@dataclass(slots=True)
class ConversionItem:
    """队列中的一个条目，只能通过迁移方法修改状态。"""

    name: str
    status: ItemStatus = ItemStatus.READY
    detail: Optional[str] = None

    def mark_working(self) -> None:
        self._transition(ItemStatus.WORKING)
        self.detail = None

    def mark_done(self) -> None:
        self._transition(ItemStatus.DONE)

    def mark_failed(self, detail: str) -> None:
        self._transition(ItemStatus.ERROR)
        self.detail = detail

    def _transition(self, target: ItemStatus) -> None:
        if not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                f"{self.name}: 不允许从 {self.status.value} 迁移到 {target.value}"
            )
        self.status = target


@dataclass(slots=True, frozen=True)
class QueueEntry:
    """对外暴露的只读队列快照。"""

    index: int
    name: str
    status: ItemStatus
    detail: Optional[str] = None


@dataclass(slots=True)
class SourceImage:
    """解码得到的可绘制源图，宽高均为已解析的正整数。"""

    drawable: "Drawable"
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class OutputArtifact:
    """编码完成、可交付的输出文件。"""

    filename: str
    data: bytes
    mime_type: str


@dataclass(slots=True, frozen=True)
class BatchJob:
    """一次批处理的固定配置与条目序列。"""

    mode: ConversionMode
    quality: float
    icon_size: int
    items: tuple[ConversionItem, ...]


@dataclass(slots=True, frozen=True)
class ValidationMetrics:
    """编码结果相对画布的相似度指标。"""

    phash_distance: float
    ssim: float


@dataclass(slots=True)
class BatchResult:
    """批处理结束后的产出与队列状态。"""

    mode: ConversionMode
    entries: tuple[QueueEntry, ...]
    output: Optional[OutputArtifact] = None
    metrics: dict[int, ValidationMetrics] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def done(self) -> int:
        return sum(1 for entry in self.entries if entry.status is ItemStatus.DONE)

    @property
    def errors(self) -> int:
        return sum(1 for entry in self.entries if entry.status is ItemStatus.ERROR)


def base_name(filename: str) -> str:
    """去掉最后一个扩展名；没有点号的文件名原样返回。"""

    if "." not in filename:
        return filename
    return filename.rsplit(".", 1)[0]
