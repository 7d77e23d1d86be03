"""单图 ICO 容器：22 字节头部后紧跟原始 PNG 数据。

布局（小端序）::

    ICONDIR       reserved=0 (u16), type=1 (u16), count=1 (u16)
    ICONDIRENTRY  width (u8), height (u8), colors=0 (u8), reserved=0 (u8),
                  planes=1 (u16), bpp=32 (u16), size (u32), offset=22 (u32)

宽高字段只有一个字节，256 及以上写为 0，读取方按惯例解释为 256。
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from canvas_bridge.core.exceptions import ContainerBuildFailure

ICONDIR = struct.Struct("<HHH")
ICONDIRENTRY = struct.Struct("<BBBBHHII")
HEADER_SIZE = ICONDIR.size + ICONDIRENTRY.size  # 22

ICON_TYPE = 1
COLOR_PLANES = 1
BITS_PER_PIXEL = 32

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@dataclass(slots=True, frozen=True)
class IconDirectoryEntry:
    """解析得到的 ICO 目录项。"""

    width: int
    height: int
    color_count: int
    planes: int
    bits_per_pixel: int
    data_size: int
    data_offset: int
    payload: bytes

    @property
    def is_png(self) -> bool:
        return self.payload.startswith(PNG_SIGNATURE)


def _size_byte(size: int) -> int:
    return 0 if size >= 256 else size


def build_icon_container(png_data: bytes, size: int) -> bytes:
    """将 PNG 数据封装为单图 ICO 文件。"""

    if not png_data:
        raise ContainerBuildFailure("PNG 数据为空")
    if size <= 0:
        raise ContainerBuildFailure(f"图标尺寸不合法: {size}")

    size_byte = _size_byte(size)
    try:
        header = ICONDIR.pack(0, ICON_TYPE, 1) + ICONDIRENTRY.pack(
            size_byte,
            size_byte,
            0,
            0,
            COLOR_PLANES,
            BITS_PER_PIXEL,
            len(png_data),
            HEADER_SIZE,
        )
        return header + bytes(png_data)
    except (struct.error, MemoryError) as exc:
        raise ContainerBuildFailure(f"ICO 容器组装失败: {exc}") from exc


def read_icon_container(data: bytes) -> IconDirectoryEntry:
    """解析单图 ICO 文件，校验头部与数据区一致。"""

    if len(data) < HEADER_SIZE:
        raise ContainerBuildFailure("ICO 文件头不完整")

    reserved, icon_type, count = ICONDIR.unpack_from(data, 0)
    if reserved != 0 or icon_type != ICON_TYPE or count < 1:
        raise ContainerBuildFailure("不是有效的 ICO 文件")

    width, height, colors, _, planes, bpp, data_size, offset = ICONDIRENTRY.unpack_from(data, ICONDIR.size)
    if offset + data_size > len(data):
        raise ContainerBuildFailure("ICO 数据区超出文件长度")

    return IconDirectoryEntry(
        width=width or 256,
        height=height or 256,
        color_count=colors,
        planes=planes,
        bits_per_pixel=bpp,
        data_size=data_size,
        data_offset=offset,
        payload=bytes(data[offset : offset + data_size]),
    )
