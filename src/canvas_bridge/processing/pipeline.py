"""转换编排：逐个条目顺序执行，单个失败不影响整个批次。"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from canvas_bridge.core.archive import BatchAggregator, WriterFactory, ZipArchiveWriter
from canvas_bridge.core.config import ConversionSettings, ValidationConfig, validate_mode
from canvas_bridge.core.exceptions import (
    BatchInProgressError,
    ContainerBuildFailure,
    DecodeFailure,
    EncodeFailure,
)
from canvas_bridge.core.models import (
    BatchJob,
    BatchResult,
    ConversionItem,
    InputFile,
    QueueEntry,
    ValidationMetrics,
)
from canvas_bridge.core.progress import ProgressUpdate
from canvas_bridge.core.scanner import filter_accepted
from canvas_bridge.processing.worker import ConversionTask, run_task

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]

ITEM_FAILURES = (DecodeFailure, EncodeFailure, ContainerBuildFailure)


class ConversionOrchestrator:
    """持有转换队列与 busy 标志，负责驱动每个条目的状态迁移。

    条目只能经由 ``run`` 内部的迁移方法修改；外部通过 ``snapshot`` 读取。
    执行期间再次调用 ``submit`` / ``run`` 或修改配置会抛出 BatchInProgressError。
    """

    def __init__(
        self,
        settings: Optional[ConversionSettings] = None,
        *,
        validation: Optional[ValidationConfig] = None,
        writer_factory: WriterFactory = ZipArchiveWriter,
    ) -> None:
        self._settings = (settings or ConversionSettings()).validated()
        self._validation = validation or ValidationConfig()
        self._writer_factory = writer_factory
        self._files: list[InputFile] = []
        self._items: list[ConversionItem] = []
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def settings(self) -> ConversionSettings:
        return self._settings

    @settings.setter
    def settings(self, value: ConversionSettings) -> None:
        self._ensure_idle()
        self._settings = value.validated()

    def submit(self, files: Iterable[InputFile]) -> tuple[QueueEntry, ...]:
        """替换当前输入集合，不受支持的文件被静默丢弃。"""

        self._ensure_idle()
        incoming = list(files)
        self._files = filter_accepted(incoming)
        self._items = [ConversionItem(name=candidate.name) for candidate in self._files]
        LOGGER.info("接受 %d 个文件（忽略 %d 个）", len(self._files), len(incoming) - len(self._files))
        return self.snapshot()

    def snapshot(self) -> tuple[QueueEntry, ...]:
        return tuple(
            QueueEntry(index=index, name=item.name, status=item.status, detail=item.detail)
            for index, item in enumerate(self._items)
        )

    def entry(self, index: int) -> QueueEntry:
        item = self._items[index]
        return QueueEntry(index=index, name=item.name, status=item.status, detail=item.detail)

    def find(self, name: str) -> Optional[QueueEntry]:
        """按文件名查找第一个匹配的条目。"""

        for index, item in enumerate(self._items):
            if item.name == name:
                return self.entry(index)
        return None

    def run(self, mode: str, observer: ProgressCallback = None) -> BatchResult:
        """按当前配置执行一个批次。

        条目级失败（解码/编码/封装）记录在条目上并继续下一个；
        ArchiveFailure 表示整个批次失败，直接抛给调用方。
        """

        mode = validate_mode(mode)
        self._ensure_idle()

        if not self._files:
            LOGGER.info("没有需要转换的文件")
            return BatchResult(mode=mode, entries=())

        self._busy = True
        try:
            # 每次运行都是新的批次，条目从 READY 开始。
            self._items = [ConversionItem(name=candidate.name) for candidate in self._files]
            job = BatchJob(
                mode=mode,
                quality=self._settings.quality,
                icon_size=self._settings.icon_size,
                items=tuple(self._items),
            )
            return self._run_job(job, observer)
        finally:
            self._busy = False

    def _run_job(self, job: BatchJob, observer: ProgressCallback) -> BatchResult:
        total = len(job.items)
        aggregator = BatchAggregator(job.mode, total, self._writer_factory)
        metrics: dict[int, ValidationMetrics] = {}
        LOGGER.info("开始转换 %d 个文件 (mode=%s)", total, job.mode)

        for index, (candidate, item) in enumerate(zip(self._files, job.items)):
            item.mark_working()
            _emit_progress(observer, total, index, index, item)

            task = ConversionTask(
                source=candidate,
                mode=job.mode,
                quality=job.quality,
                icon_size=job.icon_size,
                validate=self._validation.enabled,
            )
            try:
                output = run_task(task)
            except ITEM_FAILURES as exc:
                LOGGER.warning("转换失败 %s: %s", item.name, exc)
                item.mark_failed(str(exc))
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("转换异常 %s", item.name)
                item.mark_failed(f"转换异常: {exc}")
            else:
                aggregator.add(output.artifact)
                if output.metrics is not None:
                    metrics[index] = output.metrics
                item.mark_done()

            _emit_progress(observer, total, index + 1, index, item)

        output_artifact = aggregator.finalize()
        result = BatchResult(mode=job.mode, entries=self.snapshot(), output=output_artifact, metrics=metrics)
        LOGGER.info("转换完成：成功 %d，失败 %d", result.done, result.errors)
        return result

    def _ensure_idle(self) -> None:
        if self._busy:
            raise BatchInProgressError("已有批次正在执行，请稍候")


def _emit_progress(
    callback: ProgressCallback,
    total: int,
    completed: int,
    index: int,
    item: ConversionItem,
) -> None:
    if not callback:
        return
    callback(
        ProgressUpdate(
            total=total,
            completed=completed,
            index=index,
            name=item.name,
            status=item.status,
            message=item.detail,
        )
    )


def convert_files(
    files: Iterable[InputFile],
    mode: str,
    settings: Optional[ConversionSettings] = None,
    *,
    validation: Optional[ValidationConfig] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """一次性转换入口：提交文件并执行一个批次。"""

    orchestrator = ConversionOrchestrator(settings, validation=validation)
    orchestrator.submit(files)
    return orchestrator.run(mode, observer=progress_callback)

