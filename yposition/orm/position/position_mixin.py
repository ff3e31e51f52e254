"""位置维护 Mixin

为 CoreModel 子类提供自动位置维护：
- save() 新记录：未指定位置时追加到序列末尾
- save() 已有记录且位置被修改：平移中间的记录
- delete()：后续记录前移
- move/swap/insert_at 等显式操作

使用示例:
    from yposition.orm import CoreModel, PositionFieldMixin, PositionMixin

    # 整表一个序列
    class Slide(PositionMixin, PositionFieldMixin, CoreModel):
        title: Mapped[str] = mapped_column(String(100))

    # 按 menu_id 分组，每个菜单一个序列
    class MenuItem(PositionMixin, PositionFieldMixin, CoreModel):
        __position_scope__ = "menu_id"
        __position_init__ = 1

        menu_id: Mapped[int] = mapped_column(Integer)
        title: Mapped[str] = mapped_column(String(100))

    item = MenuItem(menu_id=1, title="首页").save(commit=True)   # position = 1
    item.move(3)
    item.swap(other)
    MenuItem.get_ordered(menu_id=1)
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func, inspect, select

from .maintainer import PositionMaintainer, position_events_suppressed
from .position_config import PositionConfig
from .stores import SQLAlchemySequenceStore


class PositionMixin:
    """位置维护 Mixin

    字段要求（使用者需定义或使用 PositionFieldMixin）:
        - position: int  序列位置

    ⚠️ PositionMixin 覆盖了 save()/delete()，继承时必须放在 CoreModel 之前。

    可配置属性（子类可覆盖，None 表示使用全局配置）:
        - __position_field__: 位置字段名
        - __position_init__: 序列起始位置
        - __position_scope__: 分组字段，字符串或字符串列表
        - __always_order_by_position__: position_query() 是否默认按位置排序
        - __position_validate_bounds__: move/insert_at 是否校验范围
        - __position_lock__: 平移前是否锁定同组记录

    位置相关写操作（move、swap、insert_at、删除、修改位置后 save）
    自成一个事务：已在 transaction_manager 事务中时加入外层事务，
    否则在操作结束时提交。
    """

    __position_field__: Optional[str] = None
    __position_init__: Optional[int] = None
    __position_scope__: Union[str, List[str], None] = None
    __always_order_by_position__: Optional[bool] = None
    __position_validate_bounds__: Optional[bool] = None
    __position_lock__: Optional[bool] = None

    # ==================== 配置 ====================

    @classmethod
    def position_config(cls) -> PositionConfig:
        return PositionConfig.from_model(cls)

    @classmethod
    def position_maintainer(cls) -> PositionMaintainer:
        """当前模型的位置维护器"""
        config = cls.position_config()
        store = SQLAlchemySequenceStore(cls, field=config.field, scope=config.scope)
        return PositionMaintainer(store, config)

    @classmethod
    def _position_column(cls):
        return getattr(cls, cls.position_config().field)

    @classmethod
    def _scope_filters(cls, scope: Dict[str, Any]) -> list:
        filters = []
        for name, value in scope.items():
            column = getattr(cls, name)
            filters.append(column.is_(None) if value is None else column == value)
        return filters

    def get_position(self) -> Optional[int]:
        return getattr(self, self.position_config().field)

    def _loaded_position(self, field: str) -> Optional[int]:
        """数据库中的原位置（位置字段未修改时返回 None）"""
        state = inspect(self)
        history = state.attrs[field].history
        if not history.added:
            return None
        if history.deleted:
            return history.deleted[0]

        # 旧值未加载（如提交后属性已过期），从数据库读取
        session = self.session
        criteria = [column == value for column, value in zip(state.mapper.primary_key, state.identity)]
        with session.no_autoflush:
            return session.scalar(select(getattr(self.__class__, field)).where(*criteria))

    # ==================== 生命周期 ====================

    def save(self, commit: bool = False):
        """保存对象，自动维护位置

        - 新记录未指定位置时分配序列末尾位置
        - 已有记录修改了位置时平移中间记录，写入在同一事务中完成
        - 已有记录的位置被清空时视为移出序列，后续记录前移
        """
        maintainer = self.position_maintainer()
        if position_events_suppressed():
            return super().save(commit=commit)

        state = inspect(self)
        if not state.has_identity:
            maintainer.before_insert(self)
            return super().save(commit=commit)

        old_position = self._loaded_position(maintainer.config.field)
        new_position = self.get_position()
        if old_position is None or new_position == old_position:
            return super().save(commit=commit)

        with maintainer.store.atomic(self):
            maintainer.lock(self)
            if new_position is not None:
                maintainer.validate_position(self, new_position)
            maintainer.before_update(self, old_position)
            return super().save(commit=commit)

    def delete(self, commit: bool = False):
        """删除对象，后续记录前移"""
        if position_events_suppressed():
            return super().delete(commit=commit)

        maintainer = self.position_maintainer()
        # 删除后无法再从数据库加载，先读出位置和分组
        maintainer.accessor.get(self)
        maintainer.accessor.scope_of(self)
        with maintainer.store.atomic(self):
            maintainer.lock(self)
            super().delete(commit=commit)
            self.session.flush()
            maintainer.after_delete(self)

    # ==================== 位置操作 ====================

    def move(self, position: int) -> bool:
        """移动到指定位置，位置未变化时返回 False"""
        return self.position_maintainer().move(self, position)

    def swap(self, other: "PositionMixin") -> None:
        """与另一条同序列记录交换位置"""
        self.position_maintainer().swap(self, other)

    def insert_at(self, position: int):
        """以指定位置写入新记录，原位置及之后的记录后移"""
        return self.position_maintainer().insert_at(self, position)

    def move_up(self) -> bool:
        return self.position_maintainer().move_up(self)

    def move_down(self) -> bool:
        return self.position_maintainer().move_down(self)

    def move_to_start(self) -> bool:
        return self.position_maintainer().move_to_start(self)

    def move_to_end(self) -> bool:
        return self.position_maintainer().move_to_end(self)

    def get_previous(self):
        """同序列中的前一条记录"""
        return self.position_maintainer().previous(self)

    def get_next(self):
        """同序列中的后一条记录"""
        return self.position_maintainer().next(self)

    def next_position(self) -> int:
        """本记录所在序列的下一个可用位置"""
        return self.position_maintainer().next_position(self)

    def normalize_sequence(self) -> int:
        """重新编号本记录所在序列，返回位置变化的记录数"""
        return self.position_maintainer().normalize(self)

    # ==================== 类级查询 ====================

    @classmethod
    def position_query(cls, ordered: bool = None, **scope):
        """按分组过滤的查询

        Args:
            ordered: 是否按位置升序，None 时取 __always_order_by_position__
            **scope: 分组字段值，如 menu_id=1
        """
        query = cls.query.filter(*cls._scope_filters(scope))
        if ordered is None:
            ordered = cls.position_config().always_order_by_position
        if ordered:
            query = cls.order_by_position(query)
        return query

    @classmethod
    def order_by_position(cls, query=None):
        """按位置升序"""
        if query is None:
            query = cls.query
        return query.order_by(cls._position_column().asc())

    @classmethod
    def order_by_inverse_position(cls, query=None):
        """按位置降序"""
        if query is None:
            query = cls.query
        return query.order_by(cls._position_column().desc())

    @classmethod
    def get_ordered(cls, descending: bool = False, **scope) -> List:
        """获取分组内按位置排序的记录"""
        query = cls.position_query(ordered=False, **scope)
        if descending:
            return cls.order_by_inverse_position(query).all()
        return cls.order_by_position(query).all()

    @classmethod
    def get_max_position(cls, **scope) -> Optional[int]:
        """分组内的最大位置，分组为空时返回 None"""
        stmt = select(func.max(cls._position_column())).where(*cls._scope_filters(scope))
        return cls._class_session().scalar(stmt)

    @classmethod
    def normalize_positions(cls, **scope) -> int:
        """重新编号指定分组，分组为空时返回 0"""
        first = cls.position_query(ordered=True, **scope).first()
        if first is None:
            return 0
        return first.normalize_sequence()


__all__ = [
    "PositionMixin",
]
