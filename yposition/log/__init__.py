"""日志模块

提供日志配置与获取：
- setup_logger: 创建控制台/文件日志记录器
- get_logger: 自动推断模块名的日志记录器获取

使用示例:
    from yposition.log import setup_logger, get_logger

    setup_logger("yposition", level="DEBUG", log_file="logs/position.log")

    logger = get_logger()
    logger.debug("序号平移完成")
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    setup_sql_logger,
    create_formatter,
    MicrosecondFormatter,
    DEFAULT_LOG_FORMAT,
    orm_logger,
    position_logger,
    transaction_logger,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "setup_sql_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "DEFAULT_LOG_FORMAT",
    "orm_logger",
    "position_logger",
    "transaction_logger",
    "logger",
    "get_logger",
]
