"""位置维护模块

保证序列中记录的位置连续：创建时追加、移动时平移、删除时收紧、交换不平移。

导出:
    - PositionFieldMixin: 位置字段 Mixin（提供 position 字段）
    - PositionMixin: 位置维护 Mixin（save/delete 钩子与 move/swap 等操作）
    - PositionMaintainer: 与存储无关的位置维护器
    - SQLAlchemySequenceStore / MemorySequenceStore: 序列存储实现

使用示例:
    from yposition.orm import CoreModel, PositionFieldMixin, PositionMixin

    class MenuItem(PositionMixin, PositionFieldMixin, CoreModel):
        __position_scope__ = "menu_id"
        menu_id: Mapped[int] = mapped_column(Integer)

    item = MenuItem(menu_id=1).save(commit=True)
    item.move(0)
    item.move_down()
"""

from .exceptions import (
    PositionError,
    PositionOutOfRangeError,
    PositionNotAssignedError,
    SequenceMismatchError,
)
from .position_config import (
    PositionConfig,
    configure_position,
    get_position_settings,
    reset_position_settings,
)
from .accessor import PositionAccessor
from .stores import SequenceStore, MemorySequenceStore, SQLAlchemySequenceStore
from .maintainer import (
    PositionMaintainer,
    without_position_events,
    position_events_suppressed,
)
from .position_fields import PositionFieldMixin
from .position_mixin import PositionMixin

__all__ = [
    "PositionError",
    "PositionOutOfRangeError",
    "PositionNotAssignedError",
    "SequenceMismatchError",
    "PositionConfig",
    "configure_position",
    "get_position_settings",
    "reset_position_settings",
    "PositionAccessor",
    "SequenceStore",
    "MemorySequenceStore",
    "SQLAlchemySequenceStore",
    "PositionMaintainer",
    "without_position_events",
    "position_events_suppressed",
    "PositionFieldMixin",
    "PositionMixin",
]
