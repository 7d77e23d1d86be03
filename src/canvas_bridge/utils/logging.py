"""日志初始化。"""

from __future__ import annotations

import logging


def setup_logging(level: int = logging.INFO) -> None:
    """初始化项目日志配置。"""

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # PIL 插件加载在 DEBUG 级别输出较多。
    for noisy in ("PIL", "cairosvg"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))
