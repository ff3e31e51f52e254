"""位置序列配置

PositionConfig 描述一种序列的规则；全局默认值来自 PositionSettings，
模型上的 __position_*__ 类属性可以逐项覆盖。

使用示例:
    from yposition.orm.position import PositionConfig, configure_position

    # 修改全局默认值（应用启动时调用一次）
    configure_position(initial_position=1)

    # 直接构造
    config = PositionConfig(field="sort_index", scope=("menu_id",))
"""

from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Tuple, Union

from yposition.config import PositionSettings, load_section


_settings: Optional[PositionSettings] = None


def configure_position(
    settings: PositionSettings = None,
    config_path: str = None,
    **kwargs,
) -> PositionSettings:
    """设置全局位置配置

    Args:
        settings: 完整的配置对象，提供时忽略其余参数
        config_path: YAML 配置文件，读取其中的 position 段，kwargs 覆盖同名项
        **kwargs: PositionSettings 字段

    Returns:
        生效的配置对象

    使用示例:
        configure_position(config_path="config/settings.yaml", lock_sequence=True)
    """
    global _settings
    if settings is None:
        if config_path is not None:
            settings = load_section(config_path, "position", PositionSettings, **kwargs)
        else:
            settings = PositionSettings(**kwargs)
    _settings = settings
    return _settings


def get_position_settings() -> PositionSettings:
    """获取全局位置配置（首次调用时从环境变量读取）"""
    global _settings
    if _settings is None:
        _settings = PositionSettings()
    return _settings


def reset_position_settings() -> None:
    """清除全局位置配置，下次获取时重新读取环境变量"""
    global _settings
    _settings = None


def _normalize_scope(scope: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    if not scope:
        return ()
    if isinstance(scope, str):
        return (scope,)
    return tuple(scope)


@dataclass(frozen=True)
class PositionConfig:
    """一种序列的位置规则

    Attributes:
        field: 位置字段名
        initial_position: 序列起始位置
        always_order_by_position: position_query() 是否默认按位置排序
        scope: 分组字段，值相同的记录组成一个序列；为空时整张表是一个序列
        validate_bounds: move/insert_at 是否校验目标位置
        lock_sequence: 平移前是否锁定同组记录
    """
    field: str = "position"
    initial_position: int = 0
    always_order_by_position: bool = False
    scope: Tuple[str, ...] = ()
    validate_bounds: bool = True
    lock_sequence: bool = False

    def __post_init__(self):
        object.__setattr__(self, "scope", _normalize_scope(self.scope))

    def last_position(self, count: int) -> int:
        """N 条记录的序列中最后一个位置"""
        return self.initial_position + count - 1

    def with_overrides(self, **changes) -> "PositionConfig":
        return replace(self, **changes)

    @classmethod
    def from_settings(cls, settings: PositionSettings = None, **overrides) -> "PositionConfig":
        """从 PositionSettings 创建配置"""
        settings = settings or get_position_settings()
        values = dict(
            field=settings.field,
            initial_position=settings.initial_position,
            always_order_by_position=settings.always_order_by_position,
            scope=tuple(settings.scope),
            validate_bounds=settings.validate_bounds,
            lock_sequence=settings.lock_sequence,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_model(cls, model_class: Any) -> "PositionConfig":
        """读取模型类上的 __position_*__ 属性，未设置的项使用全局默认值

        支持的类属性:
            __position_field__
            __position_init__
            __position_scope__
            __always_order_by_position__
            __position_validate_bounds__
            __position_lock__
        """
        return cls.from_settings(
            field=getattr(model_class, "__position_field__", None),
            initial_position=getattr(model_class, "__position_init__", None),
            scope=_normalize_scope(getattr(model_class, "__position_scope__", None)) or None,
            always_order_by_position=getattr(model_class, "__always_order_by_position__", None),
            validate_bounds=getattr(model_class, "__position_validate_bounds__", None),
            lock_sequence=getattr(model_class, "__position_lock__", None),
        )


__all__ = [
    "PositionConfig",
    "configure_position",
    "get_position_settings",
    "reset_position_settings",
]
