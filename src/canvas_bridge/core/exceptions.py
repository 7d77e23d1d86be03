"""项目内使用的自定义异常定义。"""


class CanvasBridgeError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(CanvasBridgeError):
    """配置不合法时抛出。"""


class UnsupportedFormat(CanvasBridgeError):
    """输入文件类型不在支持范围内。"""


class DecodeFailure(CanvasBridgeError):
    """源文件无法解码为可绘制图像。"""


class EncodeFailure(CanvasBridgeError):
    """画布导出为字节流失败。"""


class ContainerBuildFailure(CanvasBridgeError):
    """ICO 容器组装失败。"""


class ArchiveFailure(CanvasBridgeError):
    """压缩包无法生成，整个批次失败。"""


class BatchInProgressError(CanvasBridgeError):
    """已有批次在执行时再次提交或启动。"""


class InvalidTransitionError(CanvasBridgeError):
    """条目状态发生非法迁移。"""


class ArtifactWriteError(CanvasBridgeError):
    """输出文件写入失败。"""
