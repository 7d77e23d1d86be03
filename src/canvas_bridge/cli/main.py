"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from canvas_bridge.core.config import (
    DEFAULT_ICON_SIZE,
    DEFAULT_QUALITY,
    ConversionSettings,
    OutputConfig,
    ValidationConfig,
    validate_mode,
)
from canvas_bridge.core.exceptions import (
    ArchiveFailure,
    ArtifactWriteError,
    ContainerBuildFailure,
    InvalidConfigurationError,
)
from canvas_bridge.core.models import BatchResult, ItemStatus
from canvas_bridge.core.output_manager import OutputManager
from canvas_bridge.core.progress import ProgressUpdate
from canvas_bridge.core.report import write_csv_report
from canvas_bridge.core.scanner import collect_input_files
from canvas_bridge.processing.icon_container import read_icon_container
from canvas_bridge.processing.pipeline import ConversionOrchestrator
from canvas_bridge.utils.logging import setup_logging

app = typer.Typer(help="PNG / JPG / SVG 批量转换为 WebP 或 ICO。")
console = Console()

LOGGER = logging.getLogger(__name__)

_STATUS_STYLES = {
    ItemStatus.READY: "dim",
    ItemStatus.WORKING: "yellow",
    ItemStatus.DONE: "green",
    ItemStatus.ERROR: "red",
}


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if task_id is None:
            task_id = progress.add_task("转换图片", total=update.total)
        progress.update(task_id, completed=update.completed, description=update.name)
        if update.status is ItemStatus.ERROR:
            progress.log(f"[red]失败[/red] {update.name}: {update.message}")

    return callback


def _render_queue(result: BatchResult) -> Table:
    table = Table(title="转换队列")
    table.add_column("#", justify="right")
    table.add_column("文件")
    table.add_column("状态")
    table.add_column("说明")
    for entry in result.entries:
        style = _STATUS_STYLES[entry.status]
        table.add_row(str(entry.index + 1), entry.name, f"[{style}]{entry.status.value}[/{style}]", entry.detail or "")
    return table


@app.command("convert")
def convert_cli(  # noqa: PLR0913
    source: List[Path] = typer.Argument(..., help="源图片文件或目录，可指定多个"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    mode: str = typer.Option("webp", "--mode", "-m", help="输出格式，webp 或 ico"),
    quality: float = typer.Option(DEFAULT_QUALITY, "--quality", "-q", help="WebP 质量 0.5~1.0"),
    icon_size: int = typer.Option(DEFAULT_ICON_SIZE, "--icon-size", help="ICO 尺寸 32/64/128/256"),
    conflict_strategy: str = typer.Option("rename", "--on-conflict", help="文件名冲突策略 overwrite/skip/rename"),
    allow_recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="是否递归扫描目录"),
    report: Optional[str] = typer.Option(None, "--report", help="在输出目录写入 CSV 队列报告"),
    auto_validate: bool = typer.Option(False, "--validate", help="编码后与画布对比计算相似度指标"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量转换。"""

    setup_logging(logging.DEBUG if verbose else logging.INFO)

    try:
        mode = validate_mode(mode)
        settings = ConversionSettings(quality=quality, icon_size=icon_size).validated()
        output_manager = OutputManager(
            OutputConfig(output_dir=output.expanduser(), conflict_strategy=conflict_strategy)
        )
    except InvalidConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    sources = [p.expanduser().resolve() for p in source]
    files = collect_input_files(sources, recursive=allow_recursive)

    orchestrator = ConversionOrchestrator(settings, validation=ValidationConfig(enabled=auto_validate))
    orchestrator.submit(files)
    if not orchestrator.snapshot():
        typer.echo("没有需要转换的文件。")
        return

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )

    try:
        with progress:
            result = orchestrator.run(mode, observer=_build_progress_callback(progress))
    except ArchiveFailure as exc:
        LOGGER.error("批次失败：%s", exc)
        typer.echo(f"批次失败，未生成任何输出：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    console.print(_render_queue(result))

    if result.output is not None:
        try:
            decision = output_manager.write_artifact(result.output)
        except ArtifactWriteError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc
        if decision.destination is None:
            typer.echo(f"输出已存在，跳过：{decision.note}")
        else:
            typer.echo(f"输出文件：{decision.destination}")

    if report:
        report_path = write_csv_report(result.entries, output_manager.output_dir, report, result.metrics)
        typer.echo(f"报告文件：{report_path}")

    typer.echo(f"转换完成：成功 {result.done} 个，失败 {result.errors} 个，共 {result.total} 个。")


@app.command("inspect-ico")
def inspect_ico_cli(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="ICO 文件路径"),
) -> None:
    """打印单图 ICO 文件的头部信息。"""

    try:
        entry = read_icon_container(path.read_bytes())
    except ContainerBuildFailure as exc:
        typer.echo(f"无法解析 ICO：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"尺寸：{entry.width}x{entry.height}")
    typer.echo(f"色深：{entry.bits_per_pixel} bpp，平面数：{entry.planes}")
    typer.echo(f"数据：{entry.data_size} 字节 @ 偏移 {entry.data_offset}")
    typer.echo(f"PNG 载荷：{'是' if entry.is_png else '否'}")


if __name__ == "__main__":
    app()
