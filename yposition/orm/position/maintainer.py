"""位置维护器

保证同一序列中的记录位置始终是从 initial_position 开始的连续整数：

- 创建: 未指定位置的记录追加到序列末尾
- 移动: 记录从 old 移到 new，中间的记录整体让位一格
- 删除: 被删记录之后的记录整体前移一格
- 交换: 两条记录互换位置，不触发移动平移

维护器只通过 SequenceStore 访问数据，ORM 模型和内存对象共用同一套规则。

使用示例:
    store = MemorySequenceStore(PositionAccessor.for_fields("position"))
    maintainer = PositionMaintainer(store)

    a, b, c = Item(), Item(), Item()
    for item in (a, b, c):
        maintainer.create(item)      # 位置 0, 1, 2

    maintainer.move(c, 0)            # c=0, a=1, b=2
    maintainer.delete(a)             # c=0, b=1
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, List, Optional

from yposition.log import get_logger

from .exceptions import (
    PositionNotAssignedError,
    PositionOutOfRangeError,
    SequenceMismatchError,
)
from .position_config import PositionConfig
from .stores import SequenceStore

logger = get_logger("yposition.orm.position")

# 为 True 时模型的保存钩子不做位置维护（交换、重排时使用）
_events_suppressed: ContextVar[bool] = ContextVar("_position_events_suppressed", default=False)


@contextmanager
def without_position_events():
    """在块内暂停位置维护钩子

    块内对位置字段的修改原样写入，不追加、不平移。

    使用示例:
        with without_position_events():
            item.position = 10
            item.save(commit=True)   # 仅写入 10，其余记录不动
    """
    token = _events_suppressed.set(True)
    try:
        yield
    finally:
        _events_suppressed.reset(token)


def position_events_suppressed() -> bool:
    return _events_suppressed.get()


class PositionMaintainer:
    """位置维护器

    Args:
        store: 序列存储
        config: 序列规则，默认使用全局配置
    """

    def __init__(self, store: SequenceStore, config: PositionConfig = None):
        self.store = store
        self.config = config or PositionConfig.from_settings()
        self.accessor = store.accessor

    def __repr__(self):
        return f"PositionMaintainer(store={self.store.__class__.__name__}, config={self.config})"

    # ==================== 内部工具 ====================

    def _require_position(self, record: Any) -> int:
        position = self.accessor.get(record)
        if position is None:
            raise PositionNotAssignedError(record)
        return position

    def validate_position(self, record: Any, position: int, inserting: bool = False) -> None:
        """校验目标位置是否在序列范围内（关闭 validate_bounds 时不校验）

        移动时合法范围为 [initial, initial + N - 1]，插入时为 [initial, initial + N]。
        """
        if not self.config.validate_bounds:
            return
        lower = self.config.initial_position
        upper = self.config.last_position(self.store.count(record))
        if inserting:
            upper += 1
        if position < lower or position > upper:
            raise PositionOutOfRangeError(position, lower, upper)

    def lock(self, record: Any) -> None:
        """开启 lock_sequence 时锁定 record 所在序列，需在原子单元内调用"""
        if self.config.lock_sequence:
            self.store.lock(record)

    # ==================== 位置分配 ====================

    def next_position(self, record: Any) -> int:
        """序列中下一个可用位置：最大位置 + 1，空序列返回 initial_position"""
        max_position = self.store.max_position(record)
        if max_position is None:
            return self.config.initial_position
        return max_position + 1

    def assign_next_position(self, record: Any) -> bool:
        """记录没有位置时分配序列末尾的位置

        Returns:
            是否分配了新位置（已有位置时返回 False，原值保留）
        """
        if self.accessor.get(record) is not None:
            return False
        position = self.next_position(record)
        self.accessor.set(record, position)
        logger.debug(f"分配位置 {position} -> {record!r}")
        return True

    # ==================== 生命周期钩子 ====================

    def before_insert(self, record: Any) -> bool:
        """记录写入前调用"""
        if position_events_suppressed():
            return False
        return self.assign_next_position(record)

    def before_update(self, record: Any, old_position: Optional[int]) -> int:
        """记录位置变更写入前调用，平移 old 与 new 之间的记录

        new < old 时 [new, old) 区间的记录后移一格，
        new > old 时 (old, new] 区间的记录前移一格，
        new 为 None 时视为移出序列，old 之后的记录前移一格。

        Returns:
            被平移的记录数
        """
        if position_events_suppressed():
            return 0
        new_position = self.accessor.get(record)
        if old_position is None or new_position == old_position:
            return 0

        if new_position is None:
            affected = self.store.shift(record, old_position + 1, None, -1)
        elif new_position < old_position:
            affected = self.store.shift(record, new_position, old_position - 1, 1)
        else:
            affected = self.store.shift(record, old_position + 1, new_position, -1)
        logger.debug(f"{record!r}: {old_position} -> {new_position}，平移 {affected} 条记录")
        return affected

    def after_delete(self, record: Any) -> int:
        """记录删除后调用，位置在其之后的记录前移一格

        Returns:
            被平移的记录数
        """
        if position_events_suppressed():
            return 0
        position = self.accessor.get(record)
        if position is None:
            return 0
        affected = self.store.shift(record, position + 1, None, -1)
        logger.debug(f"{record!r} 已删除（位置 {position}），前移 {affected} 条记录")
        return affected

    # ==================== 写操作 ====================

    def create(self, record: Any) -> Any:
        """写入新记录，未指定位置时追加到序列末尾

        显式指定的位置原样保留，不做平移；需要插入到中间时使用 insert_at()。
        """
        with self.store.atomic(record):
            self.lock(record)
            self.before_insert(record)
            self.store.persist(record)
        return record

    def move(self, record: Any, position: int) -> bool:
        """把记录移动到指定位置

        Args:
            record: 已定位的记录
            position: 目标位置

        Returns:
            位置未变化时返回 False，否则返回 True

        Raises:
            PositionNotAssignedError: 记录没有位置
            PositionOutOfRangeError: 开启边界校验且目标位置超出序列范围
        """
        old_position = self._require_position(record)
        if position == old_position:
            logger.debug(f"{record!r} 已在位置 {position}，无需移动")
            return False

        with self.store.atomic(record):
            self.lock(record)
            self.validate_position(record, position)
            self.accessor.set(record, position)
            self.before_update(record, old_position)
            self.store.persist(record)
        return True

    def swap(self, record: Any, other: Any) -> None:
        """交换两条记录的位置

        两条记录的写入在同一个原子单元内完成，且不触发移动平移。

        Raises:
            PositionNotAssignedError: 任一记录没有位置
            SequenceMismatchError: 两条记录不属于同一序列
        """
        if record is other:
            return
        position = self._require_position(record)
        other_position = self._require_position(other)
        if not self.accessor.same_sequence(record, other):
            raise SequenceMismatchError(
                self.accessor.scope_of(record), self.accessor.scope_of(other)
            )

        with without_position_events(), self.store.atomic(record):
            self.lock(record)
            self.accessor.set(record, other_position)
            self.store.persist(record)
            self.accessor.set(other, position)
            self.store.persist(other)
        logger.debug(f"交换位置 {record!r}({position}) <-> {other!r}({other_position})")

    def insert_at(self, record: Any, position: int) -> Any:
        """把新记录插入到指定位置，原位置及之后的记录后移一格

        Raises:
            PositionOutOfRangeError: 开启边界校验且位置不在 [initial, initial + N] 内
        """
        with self.store.atomic(record):
            self.lock(record)
            self.validate_position(record, position, inserting=True)
            affected = self.store.shift(record, position, None, 1)
            self.accessor.set(record, position)
            with without_position_events():
                self.store.persist(record)
        logger.debug(f"插入 {record!r} 到位置 {position}，后移 {affected} 条记录")
        return record

    def delete(self, record: Any) -> int:
        """删除记录并收紧其后的位置

        Returns:
            被平移的记录数
        """
        # 删除后无法再从数据库加载，先读出位置和分组
        self.accessor.get(record)
        self.accessor.scope_of(record)
        with self.store.atomic(record):
            self.lock(record)
            self.store.remove(record)
            return self.after_delete(record)

    def move_to_start(self, record: Any) -> bool:
        return self.move(record, self.config.initial_position)

    def move_to_end(self, record: Any) -> bool:
        self._require_position(record)
        return self.move(record, self.config.last_position(self.store.count(record)))

    def move_up(self, record: Any) -> bool:
        """与前一条记录交换位置，已在开头时返回 False"""
        self._require_position(record)
        previous = self.store.adjacent(record, previous=True)
        if previous is None:
            return False
        self.swap(record, previous)
        return True

    def move_down(self, record: Any) -> bool:
        """与后一条记录交换位置，已在末尾时返回 False"""
        self._require_position(record)
        following = self.store.adjacent(record, previous=False)
        if following is None:
            return False
        self.swap(record, following)
        return True

    def normalize(self, record: Any) -> int:
        """把 record 所在序列重新编号为连续位置，保持现有相对顺序

        用于修复外部写入造成的空洞或重复。

        Returns:
            位置发生变化的记录数
        """
        changed = 0
        with without_position_events(), self.store.atomic(record):
            self.lock(record)
            for index, item in enumerate(self.store.siblings(record)):
                expected = self.config.initial_position + index
                if self.accessor.get(item) != expected:
                    self.accessor.set(item, expected)
                    self.store.persist(item)
                    changed += 1
        if changed:
            logger.info(f"序列 {self.accessor.scope_of(record)} 重新编号，{changed} 条记录位置变化")
        return changed

    # ==================== 查询 ====================

    def ordered(self, record: Any, descending: bool = False) -> List[Any]:
        """record 所在序列按位置排序的记录"""
        return self.store.siblings(record, descending=descending)

    def previous(self, record: Any) -> Optional[Any]:
        return self.store.adjacent(record, previous=True)

    def next(self, record: Any) -> Optional[Any]:
        return self.store.adjacent(record, previous=False)

    def count(self, record: Any) -> int:
        return self.store.count(record)


__all__ = [
    "PositionMaintainer",
    "without_position_events",
    "position_events_suppressed",
]
