"""YAML 配置加载

使用示例:
    from yposition.config import ConfigLoader, load_yaml_config, load_section, AppSettings

    raw = ConfigLoader.load("config/settings.yaml")
    settings = load_yaml_config("config/settings.yaml", AppSettings)
    position = load_section("config/settings.yaml", "position", PositionSettings)
"""

import os
from typing import Any, Dict, Optional, Type, TypeVar

import yaml


T = TypeVar("T")


def _resolve_path(config_path: str, base_dir: Optional[str] = None) -> str:
    if os.path.isabs(config_path):
        return config_path
    return os.path.abspath(os.path.join(base_dir or os.getcwd(), config_path))


class ConfigLoader:
    """YAML 配置加载器，按绝对路径缓存解析结果"""

    _cache: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def load(
        cls,
        config_path: str,
        base_dir: Optional[str] = None,
        use_cache: bool = True
    ) -> Dict[str, Any]:
        """读取 YAML 文件为字典

        Args:
            config_path: 配置文件路径（相对路径基于 base_dir 或当前目录）
            base_dir: 基础目录
            use_cache: 是否使用缓存

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: 顶层不是映射
            yaml.YAMLError: YAML 解析错误
        """
        abs_path = _resolve_path(config_path, base_dir)
        if use_cache and abs_path in cls._cache:
            return cls._cache[abs_path]

        if not os.path.isfile(abs_path):
            raise FileNotFoundError(f"配置文件不存在: {abs_path}")

        with open(abs_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"配置文件顶层必须是映射: {abs_path}")

        if use_cache:
            cls._cache[abs_path] = data
        return data

    @classmethod
    def reload(cls, config_path: str, base_dir: Optional[str] = None) -> Dict[str, Any]:
        cls._cache.pop(_resolve_path(config_path, base_dir), None)
        return cls.load(config_path, base_dir)

    @classmethod
    def clear_cache(cls):
        cls._cache.clear()


def load_yaml_config(
    config_path: str,
    settings_class: Type[T],
    base_dir: Optional[str] = None,
    **overrides
) -> T:
    """用整个 YAML 文件构造 Settings 实例，overrides 覆盖同名顶层键

    使用示例:
        settings = load_yaml_config("config/settings.yaml", AppSettings)
        print(settings.position.initial_position)
    """
    data = dict(ConfigLoader.load(config_path, base_dir))
    data.update(overrides)
    return settings_class(**data)


def load_section(
    config_path: str,
    section: str,
    settings_class: Type[T],
    base_dir: Optional[str] = None,
    **overrides
) -> T:
    """只用 YAML 中的某个顶层段构造 Settings 实例，缺少该段时全部取默认值

    使用示例:
        logging_settings = load_section("config/settings.yaml", "logging", LoggingSettings)
    """
    data = dict(ConfigLoader.load(config_path, base_dir).get(section) or {})
    data.update(overrides)
    return settings_class(**data)
