"""配置模块

提供配置管理功能：
- AppSettings: 应用基础配置，支持 YAML + 环境变量
- 子配置类: DatabaseSettings, LoggingSettings, PositionSettings
- ConfigLoader: YAML 配置加载器

快速开始:
    from yposition.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)

配置优先级: YAML 文件（构造参数） > 环境变量 > 默认值
"""

from .settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    PositionSettings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
    load_section,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "PositionSettings",
    "ConfigLoader",
    "load_yaml_config",
    "load_section",
]
