"""批量产出的汇总：单个条目直接交付，多个条目打包为 ZIP。"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Callable, Dict, List, Optional, Protocol

from canvas_bridge.core.config import MODE_ICO, MODE_WEBP, ConversionMode
from canvas_bridge.core.exceptions import ArchiveFailure
from canvas_bridge.core.models import OutputArtifact

LOGGER = logging.getLogger(__name__)

ARCHIVE_NAMES = {
    MODE_WEBP: "webp-conversions.zip",
    MODE_ICO: "ico-icons.zip",
}
ARCHIVE_MIME_TYPE = "application/zip"

# 固定时间戳，保证同样的输入得到逐字节一致的压缩包。
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class ArchiveWriter(Protocol):
    """接受 (name, bytes) 序列并生成单个压缩包。"""

    def add(self, name: str, data: bytes) -> None: ...

    def finalize(self) -> bytes: ...


class ZipArchiveWriter:
    """基于 zipfile 的写入实现，同名条目后写覆盖先写。"""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._compression = compression
        self._entries: Dict[str, bytes] = {}

    def add(self, name: str, data: bytes) -> None:
        if name in self._entries:
            LOGGER.warning("压缩包内条目重名，覆盖: %s", name)
            del self._entries[name]
        self._entries[name] = data

    def finalize(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self._compression) as archive:
            for name, data in self._entries.items():
                info = zipfile.ZipInfo(name, date_time=_FIXED_DATE_TIME)
                info.compress_type = self._compression
                info.external_attr = 0o644 << 16
                archive.writestr(info, data)
        return buffer.getvalue()


WriterFactory = Callable[[], ArchiveWriter]


class BatchAggregator:
    """收集条目产出；在所有条目处理完后一次性生成批次输出。"""

    def __init__(
        self,
        mode: ConversionMode,
        item_count: int,
        writer_factory: WriterFactory = ZipArchiveWriter,
    ) -> None:
        self.mode = mode
        self.item_count = item_count
        self._writer_factory = writer_factory
        self._artifacts: List[OutputArtifact] = []

    @property
    def archive_name(self) -> str:
        return ARCHIVE_NAMES.get(self.mode, ARCHIVE_NAMES[MODE_WEBP])

    def add(self, artifact: OutputArtifact) -> None:
        self._artifacts.append(artifact)

    def finalize(self) -> Optional[OutputArtifact]:
        """单个条目返回其产出（失败时为 None）；多个条目返回压缩包。"""

        if self.item_count <= 1:
            return self._artifacts[0] if self._artifacts else None

        try:
            writer = self._writer_factory()
            for artifact in self._artifacts:
                writer.add(artifact.filename, artifact.data)
            data = writer.finalize()
        except Exception as exc:  # noqa: BLE001
            raise ArchiveFailure(f"压缩包生成失败: {exc}") from exc
        if not data:
            raise ArchiveFailure("压缩包生成失败: 结果为空")

        LOGGER.info("压缩包 %s 已生成，共 %d 个条目", self.archive_name, len(self._artifacts))
        return OutputArtifact(filename=self.archive_name, data=data, mime_type=ARCHIVE_MIME_TYPE)
