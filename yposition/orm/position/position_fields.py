"""位置字段定义

使用示例:
    from yposition.orm import CoreModel, PositionFieldMixin, PositionMixin

    class MenuItem(PositionMixin, PositionFieldMixin, CoreModel):
        title: Mapped[str] = mapped_column(String(100))
        # position 字段由 PositionFieldMixin 自动提供
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class PositionFieldMixin:
    """位置字段 Mixin

    提供标准的 position 字段；值由 PositionMixin 在保存时分配，
    同一序列内从 initial_position 开始连续编号。

    位置字段不加唯一约束：交换和平移过程中会短暂出现重复值。
    """

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="序列位置"
    )


__all__ = [
    "PositionFieldMixin",
]
