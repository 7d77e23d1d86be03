"""输入文件扫描与类型筛选逻辑。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from canvas_bridge.core.exceptions import UnsupportedFormat
from canvas_bridge.core.models import InputFile

LOGGER = logging.getLogger(__name__)

ACCEPTED_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg", "image/svg+xml"})
ACCEPTED_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "svg"})

SVG_MIME_TYPE = "image/svg+xml"


def _extension(name: str) -> str:
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def is_accepted(mime_type: str, name: str) -> bool:
    """声明类型或扩展名任一命中即接受。"""

    if mime_type in ACCEPTED_MIME_TYPES:
        return True
    return _extension(name) in ACCEPTED_EXTENSIONS


def is_svg(candidate: InputFile) -> bool:
    return candidate.mime_type == SVG_MIME_TYPE or candidate.name.lower().endswith(".svg")


def ensure_accepted(candidate: InputFile) -> InputFile:
    """不支持的类型抛出 UnsupportedFormat，供需要显式报错的调用方使用。"""

    if not is_accepted(candidate.mime_type, candidate.name):
        raise UnsupportedFormat(f"不支持的文件类型: {candidate.name} ({candidate.mime_type or '未知'})")
    return candidate


def filter_accepted(candidates: Iterable[InputFile]) -> list[InputFile]:
    """按原有顺序保留受支持的文件，其余静默丢弃。"""

    accepted: list[InputFile] = []
    for candidate in candidates:
        if is_accepted(candidate.mime_type, candidate.name):
            accepted.append(candidate)
        else:
            LOGGER.debug("忽略不支持的文件: %s", candidate.name)
    return accepted


def _iter_candidate_files(path: Path, recursive: bool) -> Iterator[Path]:
    """遍历路径下的所有文件。"""

    if path.is_file():
        yield path
        return

    if not path.is_dir():
        LOGGER.warning("路径不存在: %s", path)
        return

    iterator = path.rglob("*") if recursive else path.glob("*")
    for candidate in iterator:
        if candidate.is_file():
            yield candidate


def collect_input_files(sources: Sequence[Path], *, recursive: bool = True) -> list[InputFile]:
    """扫描文件或目录，读取扩展名受支持的文件。

    目录内的文件按路径（忽略大小写）排序；显式给出的文件保持命令行顺序。
    """

    collected: list[InputFile] = []
    seen_paths: set[Path] = set()

    for root in sources:
        resolved_root = root.resolve()
        candidates = list(_iter_candidate_files(resolved_root, recursive))
        if resolved_root.is_dir():
            candidates.sort(key=lambda p: str(p).lower())

        for candidate in candidates:
            if candidate in seen_paths:
                continue
            seen_paths.add(candidate)

            if _extension(candidate.name) not in ACCEPTED_EXTENSIONS:
                continue

            try:
                collected.append(InputFile.from_path(candidate))
            except OSError as exc:
                LOGGER.warning("无法读取文件 %s: %s", candidate, exc)

    return collected
