"""位置访问器

维护器不关心记录的具体类型，只通过访问器读写位置值和分组值。
ORM 模型、dataclass、普通对象都可以用 PositionAccessor.for_fields() 构造。
"""

from operator import attrgetter
from typing import Any, Callable, Dict, Iterable, Optional, Tuple


class PositionAccessor:
    """记录位置和分组的读写接口

    Args:
        getter: 读取记录的位置值，未分配时返回 None
        setter: 写入记录的位置值
        scope: 返回记录所在序列的分组值字典，None 表示全部记录同属一个序列

    使用示例:
        accessor = PositionAccessor.for_fields("sort_index", scope=("menu_id",))
        accessor.get(item)            # -> 3
        accessor.scope_of(item)       # -> {"menu_id": 1}
    """

    def __init__(
        self,
        getter: Callable[[Any], Optional[int]],
        setter: Callable[[Any, int], None],
        scope: Callable[[Any], Dict[str, Any]] = None,
    ):
        self._getter = getter
        self._setter = setter
        self._scope = scope

    def get(self, record: Any) -> Optional[int]:
        return self._getter(record)

    def set(self, record: Any, position: int) -> None:
        self._setter(record, position)

    def scope_of(self, record: Any) -> Dict[str, Any]:
        if self._scope is None:
            return {}
        return self._scope(record)

    def scope_key(self, record: Any) -> Tuple:
        """可比较、可哈希的分组标识"""
        return tuple(sorted(self.scope_of(record).items()))

    def same_sequence(self, a: Any, b: Any) -> bool:
        return self.scope_key(a) == self.scope_key(b)

    @classmethod
    def for_fields(cls, field: str = "position", scope: Iterable[str] = ()) -> "PositionAccessor":
        """按属性名构造访问器"""
        scope = tuple(scope or ())

        def setter(record, value):
            setattr(record, field, value)

        scope_getter = None
        if scope:
            def scope_getter(record):
                return {name: getattr(record, name) for name in scope}

        return cls(attrgetter(field), setter, scope_getter)


__all__ = ["PositionAccessor"]
