"""队列报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Mapping, Optional

from canvas_bridge.core.models import QueueEntry, ValidationMetrics

HEADER = ["index", "name", "status", "detail", "phash_distance", "ssim"]


def write_csv_report(
    entries: Iterable[QueueEntry],
    output_dir: Path,
    filename: str,
    metrics: Optional[Mapping[int, ValidationMetrics]] = None,
) -> Path:
    """将队列最终状态写入 CSV 报告。"""

    metrics = metrics or {}
    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for entry in entries:
            measured = metrics.get(entry.index)
            writer.writerow(
                [
                    entry.index,
                    entry.name,
                    entry.status.value,
                    entry.detail or "",
                    _format_phash(measured.phash_distance if measured else None),
                    _format_ssim(measured.ssim if measured else None),
                ]
            )
    return report_path


def _format_phash(value: float | None) -> str:
    if value is None:
        return ""
    return str(int(round(value)))


def _format_ssim(value: float | None) -> str:
    if value is None:
        return ""
    return f"{value:.6f}"
