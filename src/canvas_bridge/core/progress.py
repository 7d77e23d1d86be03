"""进度更新的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from canvas_bridge.core.models import ItemStatus


@dataclass(slots=True)
class ProgressUpdate:
    """批处理过程中每次条目状态变化时发出的进度信息。"""

    total: int
    completed: int
    index: int
    name: str
    status: ItemStatus
    message: Optional[str] = None
