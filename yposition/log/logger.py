"""
日志工具模块
提供简化的日志配置功能
"""

import inspect
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Optional


def _load_logging_config_from_file(config_path: str, base_dir: str = None) -> Any:
    """读取 YAML 中的 logging 段为 LoggingSettings"""
    from ..config import LoggingSettings, load_section

    return load_section(config_path, "logging", LoggingSettings, base_dir=base_dir)


class MicrosecondFormatter(logging.Formatter):
    """支持微秒精度的日志格式化器"""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        if datefmt:
            s = time.strftime(datefmt, ct)
        else:
            s = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        return "%s.%06d" % (s, (record.created - int(record.created)) * 1000000)


# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"


def create_formatter(
    log_format: str = None,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    use_microseconds: bool = True
) -> logging.Formatter:
    """创建日志格式化器

    Args:
        log_format: 日志格式字符串
        datefmt: 时间格式
        use_microseconds: 是否使用微秒精度

    Returns:
        日志格式化器
    """
    fmt = log_format or DEFAULT_LOG_FORMAT
    if use_microseconds:
        return MicrosecondFormatter(fmt=fmt, datefmt=datefmt)
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logger(
    name: str = None,
    level: str = "INFO",
    log_file: str = None,
    log_format: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    propagate: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    encoding: str = "utf-8",
) -> logging.Logger:
    """设置并返回配置好的日志记录器

    Args:
        name: 日志记录器名称，默认为root logger
        level: 日志级别，可选：DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_file: 日志文件路径，如果不指定则不写入文件
        log_format: 日志格式，如果不指定则使用默认格式
        console: 是否输出到控制台
        use_microseconds: 是否使用微秒精度时间戳
        propagate: 是否传播到父日志器
        max_bytes: 单个日志文件最大字节数，超过后轮转
        backup_count: 保留的备份文件数量
        encoding: 文件编码

    Returns:
        配置好的日志记录器

    使用示例:
        from yposition.log import setup_logger

        logger = setup_logger("my_app", level="DEBUG")

        logger = setup_logger(
            "my_app",
            level="DEBUG",
            log_file="logs/app.log",
            max_bytes=10*1024*1024,
            backup_count=5,
        )
    """
    _logger = logging.getLogger(name) if name else logging.getLogger()
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _logger.propagate = propagate

    # 清除现有的处理器
    _logger.handlers.clear()

    formatter = create_formatter(log_format, use_microseconds=use_microseconds)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding=encoding,
        )
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def setup_root_logger(
    config: Any = None,
    config_path: str = None,
    config_base_dir: str = None,
) -> logging.Logger:
    """根据配置对象设置 yposition 日志器

    Args:
        config: 日志配置对象（LoggingSettings）
        config_path: 配置文件路径（YAML），提供后自动加载配置
        config_base_dir: 配置文件基础目录

    Returns:
        "yposition" 日志记录器

    使用示例:
        setup_root_logger(config=settings.logging)
        setup_root_logger(config_path="config/settings.yaml")
    """
    if config_path is not None:
        config = _load_logging_config_from_file(config_path, config_base_dir)
    if config is None:
        from ..config import LoggingSettings
        config = LoggingSettings()

    return setup_logger(
        name="yposition",
        level=config.level,
        log_file=config.file_path or None,
        console=config.enable_console,
        propagate=False,
        max_bytes=config.file_max_bytes,
        backup_count=config.file_backup_count,
        encoding=config.file_encoding,
    )


def setup_sql_logger(
    level: str = "DEBUG",
    log_file: str = None,
    console: bool = False,
    config: Any = None,
) -> Optional[logging.Logger]:
    """设置 SQL 日志记录器

    位置维护产生的批量 UPDATE 语句都经过 sqlalchemy.engine 日志器，
    排查序号错乱问题时可以打开。

    Args:
        level: 日志级别（如果提供 config 则忽略）
        log_file: SQL 日志文件路径（如果提供 config 则忽略）
        console: 是否输出到控制台
        config: 日志配置对象，提供后自动提取 SQL 日志相关配置

    Returns:
        SQL 日志记录器，如果 config.sql_log_enabled 为 False 则返回 None
    """
    if config is not None:
        if not getattr(config, "sql_log_enabled", True):
            return None
        level = getattr(config, "sql_log_level", level)
        log_file = getattr(config, "sql_log_file_path", log_file)

    sql_format = "%(asctime)s - %(levelname)s - %(message)s"

    sql_logger = setup_logger(
        name="sqlalchemy.engine",
        level=level,
        log_file=log_file,
        log_format=sql_format,
        console=console,
        propagate=False,
    )
    return sql_logger


def get_logger(name: str = None) -> logging.Logger:
    """获取日志记录器，支持自动推断模块名

    无参数调用时，自动从调用栈获取模块的 __name__ 作为日志器名称。
    有参数调用时，若为不含点号的简写，自动添加 'yposition.' 前缀。

    Args:
        name: 日志记录器名称。
              - None: 自动使用调用模块的 __name__
              - 字符串: 使用指定名称（简写自动添加前缀，如 "orm" -> "yposition.orm"）

    Returns:
        日志记录器实例

    使用示例:
        from yposition.log import get_logger

        logger = get_logger()
        # 在 yposition/orm/position/maintainer.py 中 -> "yposition.orm.position.maintainer"

        logger = get_logger("orm")                  # -> "yposition.orm"
        logger = get_logger("yposition.orm")        # -> "yposition.orm"
        logger = get_logger("sqlalchemy.engine")    # -> "sqlalchemy.engine"
    """
    if name is None:
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            name = frame.f_back.f_globals.get('__name__', 'yposition')
        else:
            name = 'yposition'
    elif name != 'yposition' and '.' not in name:
        name = f"yposition.{name}"

    return logging.getLogger(name)


orm_logger = get_logger("orm")
position_logger = get_logger("yposition.orm.position")
transaction_logger = get_logger("yposition.orm.transaction")

# 通用日志记录器
logger = logging.getLogger("yposition")
