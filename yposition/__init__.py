"""
YPosition - 连续位置维护库

为 SQLAlchemy 模型提供序列位置的自动维护：
创建时追加、移动时平移、删除时收紧、交换不平移。
"""

from .version import __version__, __author__, __description__

# 导出配置
from .config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    PositionSettings,
    ConfigLoader,
    load_yaml_config,
)

# 导出日志
from .log import (
    setup_logger,
    setup_root_logger,
    get_logger,
)

# 导出ORM
from .orm import (
    CoreModel,
    init_database,
    get_engine,
    db_manager,
    db_session_scope,
    transaction_manager,
    PositionFieldMixin,
    PositionMixin,
    PositionMaintainer,
    PositionConfig,
    configure_position,
    PositionError,
    PositionOutOfRangeError,
    PositionNotAssignedError,
    SequenceMismatchError,
)

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "PositionSettings",
    "ConfigLoader",
    "load_yaml_config",
    "setup_logger",
    "setup_root_logger",
    "get_logger",
    "CoreModel",
    "init_database",
    "get_engine",
    "db_manager",
    "db_session_scope",
    "transaction_manager",
    "PositionFieldMixin",
    "PositionMixin",
    "PositionMaintainer",
    "PositionConfig",
    "configure_position",
    "PositionError",
    "PositionOutOfRangeError",
    "PositionNotAssignedError",
    "SequenceMismatchError",
]
