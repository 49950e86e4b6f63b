"""日志模块

提供日志配置与管理：
- 控制台 / 文件（可按大小轮转）输出
- 微秒精度时间戳
- 按模块名自动推断日志器名称

使用示例:
    from ysortable.log import setup_logger, get_logger

    # 创建自定义日志记录器
    logger = setup_logger("my_app", level="DEBUG", log_file="logs/app.log")

    # 在模块中获取日志器
    logger = get_logger()
"""

from .logger import (
    LoggingConfigProtocol,
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    orm_logger,
    logger,
    get_logger,
)

__all__ = [
    "LoggingConfigProtocol",
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "orm_logger",
    "logger",
    "get_logger",
]
