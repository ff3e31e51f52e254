"""序列存储

维护器对序列的全部读写都经过存储接口：
- max_position / count: 读取序列的最大位置和记录数
- shift: 把区间内（除当前记录外）的位置整体加减
- persist / remove: 写入或删除单条记录
- siblings / adjacent: 按位置读取序列
- lock / atomic: 锁定序列、提供原子单元

提供两种实现：
- SQLAlchemySequenceStore: 基于 SQLAlchemy 会话，平移使用单条 UPDATE 语句
- MemorySequenceStore: 基于内存列表，用于无数据库的场景和测试
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, ContextManager, Iterator, List, Optional, Union

from sqlalchemy import and_, func, inspect, not_, select, update
from sqlalchemy.orm import Session, object_session

from yposition.log import get_logger

from ..transaction import get_current_transaction, transaction_manager
from .accessor import PositionAccessor

logger = get_logger("yposition.orm.position")


class SequenceStore(ABC):
    """序列存储抽象基类"""

    def __init__(self, accessor: PositionAccessor):
        self.accessor = accessor

    @abstractmethod
    def max_position(self, record: Any) -> Optional[int]:
        """record 所在序列的最大位置，序列为空时返回 None

        record 本身可以尚未写入。
        """

    @abstractmethod
    def count(self, record: Any) -> int:
        """record 所在序列中已存储且已定位的记录数（位置为空的记录不计入）"""

    @abstractmethod
    def shift(self, record: Any, start: int, end: Optional[int], delta: int) -> int:
        """把 record 所在序列中位置在 [start, end] 内的记录位置加上 delta

        Args:
            record: 参照记录，用于确定序列，自身不参与平移
            start: 区间下界（含）
            end: 区间上界（含），None 表示不设上界
            delta: 位置增量，通常为 +1 或 -1

        Returns:
            受影响的记录数
        """

    @abstractmethod
    def persist(self, record: Any) -> None:
        """写入记录（新增或更新）"""

    @abstractmethod
    def remove(self, record: Any) -> None:
        """删除记录"""

    @abstractmethod
    def siblings(self, record: Any, descending: bool = False) -> List[Any]:
        """record 所在序列的全部已定位记录（含自身），按位置排序"""

    @abstractmethod
    def adjacent(self, record: Any, previous: bool = True) -> Optional[Any]:
        """位置紧邻 record 的记录，previous=True 取前一条，否则取后一条"""

    def lock(self, record: Any) -> None:
        """锁定 record 所在序列，默认不做任何事"""

    @abstractmethod
    def atomic(self, record: Any = None) -> ContextManager:
        """原子单元：块内的所有写入要么全部生效，要么全部撤销"""


class MemorySequenceStore(SequenceStore):
    """内存序列存储

    记录按对象身份（is）区分，位置通过访问器直接写在对象上。

    使用示例:
        store = MemorySequenceStore(PositionAccessor.for_fields("position", scope=("menu_id",)))
        maintainer = PositionMaintainer(store)
        maintainer.create(Item(menu_id=1))
    """

    def __init__(self, accessor: PositionAccessor = None, records: List[Any] = None):
        super().__init__(accessor or PositionAccessor.for_fields())
        self._records: List[Any] = list(records or [])

    @property
    def records(self) -> List[Any]:
        return list(self._records)

    def _contains(self, record: Any) -> bool:
        return any(item is record for item in self._records)

    def _members(self, record: Any) -> List[Any]:
        key = self.accessor.scope_key(record)
        return [item for item in self._records if self.accessor.scope_key(item) == key]

    def max_position(self, record: Any) -> Optional[int]:
        positions = [
            self.accessor.get(item) for item in self._members(record)
            if self.accessor.get(item) is not None
        ]
        return max(positions) if positions else None

    def count(self, record: Any) -> int:
        return sum(1 for item in self._members(record) if self.accessor.get(item) is not None)

    def shift(self, record: Any, start: int, end: Optional[int], delta: int) -> int:
        affected = 0
        for item in self._members(record):
            if item is record:
                continue
            position = self.accessor.get(item)
            if position is None or position < start:
                continue
            if end is not None and position > end:
                continue
            self.accessor.set(item, position + delta)
            affected += 1
        return affected

    def persist(self, record: Any) -> None:
        if not self._contains(record):
            self._records.append(record)

    def remove(self, record: Any) -> None:
        self._records = [item for item in self._records if item is not record]

    def siblings(self, record: Any, descending: bool = False) -> List[Any]:
        members = [item for item in self._members(record) if self.accessor.get(item) is not None]
        return sorted(members, key=self.accessor.get, reverse=descending)

    def adjacent(self, record: Any, previous: bool = True) -> Optional[Any]:
        position = self.accessor.get(record)
        if position is None:
            return None
        if previous:
            candidates = [item for item in self.siblings(record, descending=True)
                          if self.accessor.get(item) < position]
        else:
            candidates = [item for item in self.siblings(record)
                          if self.accessor.get(item) > position]
        return candidates[0] if candidates else None

    @contextmanager
    def atomic(self, record: Any = None) -> Iterator["MemorySequenceStore"]:
        records = list(self._records)
        if record is not None and not self._contains(record):
            records.append(record)
        snapshot = [(item, self.accessor.get(item)) for item in records]
        membership = list(self._records)
        try:
            yield self
        except Exception:
            for item, position in snapshot:
                self.accessor.set(item, position)
            self._records = membership
            logger.debug("内存序列已恢复到原子单元开始前的状态")
            raise


SessionSource = Union[Session, Callable[[], Session], None]


class SQLAlchemySequenceStore(SequenceStore):
    """基于 SQLAlchemy 的序列存储

    Args:
        model_class: 模型类
        field: 位置字段名
        scope: 分组字段名
        session: Session 或返回 Session 的可调用对象（如 scoped_session）；
            不传时依次使用记录所在的 session、当前事务的 session、模型的 query session、全局 session
        accessor: 自定义访问器，默认按 field/scope 构造

    会话中尚未 flush 的新记录（session.new）同样参与最大值计算和平移，
    连续创建多条记录而不提交时也能得到连续的位置。
    """

    def __init__(
        self,
        model_class: Any,
        field: str = "position",
        scope=(),
        session: SessionSource = None,
        accessor: PositionAccessor = None,
    ):
        super().__init__(accessor or PositionAccessor.for_fields(field, scope))
        self.model_class = model_class
        self.field = field
        self._session = session

    @property
    def column(self):
        return getattr(self.model_class, self.field)

    def session_for(self, record: Any = None) -> Session:
        if record is not None:
            session = object_session(record)
            if session is not None:
                return session
        if self._session is not None:
            return self._session() if callable(self._session) else self._session
        # 尚未加入任何 session 的新记录随当前事务写入
        tx = get_current_transaction()
        if tx is not None:
            return tx.session
        class_session = getattr(self.model_class, "_class_session", None)
        if class_session is not None:
            return class_session()
        from ..db_session import db_manager
        return db_manager.get_session()

    # ==================== 查询条件 ====================

    def scope_criteria(self, record: Any) -> list:
        """record 所在序列的 WHERE 条件"""
        criteria = []
        for name, value in self.accessor.scope_of(record).items():
            column = getattr(self.model_class, name)
            criteria.append(column.is_(None) if value is None else column == value)
        return criteria

    def _exclude_criteria(self, record: Any) -> list:
        state = inspect(record)
        if state.identity is None:
            return []
        pairs = list(zip(state.mapper.primary_key, state.identity))
        if len(pairs) == 1:
            column, value = pairs[0]
            return [column != value]
        return [not_(and_(*(column == value for column, value in pairs)))]

    def _pending(self, session: Session, record: Any) -> List[Any]:
        """会话中尚未写入数据库、与 record 同序列的其他新记录"""
        return [
            obj for obj in session.new
            if isinstance(obj, self.model_class)
            and obj is not record
            and self.accessor.same_sequence(obj, record)
        ]

    # ==================== 读取 ====================

    def max_position(self, record: Any) -> Optional[int]:
        session = self.session_for(record)
        with session.no_autoflush:
            stored = session.scalar(
                select(func.max(self.column)).where(*self.scope_criteria(record))
            )
            candidates = [self.accessor.get(obj) for obj in self._pending(session, record)]
        candidates.append(stored)
        candidates = [value for value in candidates if value is not None]
        return max(candidates) if candidates else None

    def count(self, record: Any) -> int:
        session = self.session_for(record)
        with session.no_autoflush:
            stored = session.scalar(
                select(func.count())
                .select_from(self.model_class)
                .where(*self.scope_criteria(record), self.column.is_not(None))
            )
            pending = sum(
                1 for obj in self._pending(session, record) if self.accessor.get(obj) is not None
            )
        return (stored or 0) + pending

    def siblings(self, record: Any, descending: bool = False) -> List[Any]:
        session = self.session_for(record)
        order = self.column.desc() if descending else self.column.asc()
        stmt = (
            select(self.model_class)
            .where(*self.scope_criteria(record), self.column.is_not(None))
            .order_by(order, *inspect(self.model_class).primary_key)
        )
        return list(session.scalars(stmt))

    def adjacent(self, record: Any, previous: bool = True) -> Optional[Any]:
        position = self.accessor.get(record)
        if position is None:
            return None
        column = self.column
        if previous:
            condition, order = column < position, column.desc()
        else:
            condition, order = column > position, column.asc()
        session = self.session_for(record)
        stmt = (
            select(self.model_class)
            .where(*self.scope_criteria(record), *self._exclude_criteria(record), condition)
            .order_by(order)
            .limit(1)
        )
        return session.scalars(stmt).first()

    # ==================== 写入 ====================

    def shift(self, record: Any, start: int, end: Optional[int], delta: int) -> int:
        session = self.session_for(record)
        column = self.column
        criteria = [*self.scope_criteria(record), *self._exclude_criteria(record), column >= start]
        if end is not None:
            criteria.append(column <= end)

        stmt = (
            update(self.model_class)
            .where(*criteria)
            .values({self.field: column + delta})
            .execution_options(synchronize_session="fetch")
        )
        with session.no_autoflush:
            result = session.execute(stmt)
            affected = max(result.rowcount or 0, 0)
            for obj in self._pending(session, record):
                position = self.accessor.get(obj)
                if position is None or position < start or (end is not None and position > end):
                    continue
                self.accessor.set(obj, position + delta)
                affected += 1
        return affected

    def persist(self, record: Any) -> None:
        session = self.session_for(record)
        session.add(record)
        session.flush()

    def remove(self, record: Any) -> None:
        session = self.session_for(record)
        session.delete(record)
        session.flush()

    def lock(self, record: Any) -> None:
        session = self.session_for(record)
        stmt = (
            select(*inspect(self.model_class).primary_key)
            .where(*self.scope_criteria(record))
            .with_for_update()
        )
        with session.no_autoflush:
            session.execute(stmt).all()
        logger.debug(f"已锁定序列 {self.model_class.__name__}{self.accessor.scope_of(record)}")

    @contextmanager
    def atomic(self, record: Any = None):
        """加入当前事务，不在事务中时新建事务并在结束时提交

        Raises:
            SessionMismatchError: 记录所在的 session 不是当前事务的 session
        """
        session = self.session_for(record)
        with transaction_manager.transaction(session=session) as tx:
            yield tx


__all__ = [
    "SequenceStore",
    "MemorySequenceStore",
    "SQLAlchemySequenceStore",
]
