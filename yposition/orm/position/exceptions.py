"""位置维护异常定义"""

from typing import Any, Optional


class PositionError(Exception):
    """位置维护基础异常"""
    pass


class PositionOutOfRangeError(PositionError):
    """目标位置超出序列范围

    序列有 N 条记录时，合法位置为 [lower, upper]，
    即 [initial_position, initial_position + N - 1]（插入时上界为 + N）。

    Attributes:
        position: 请求的目标位置
        lower: 合法下界
        upper: 合法上界
    """

    def __init__(self, position: int, lower: int, upper: int):
        self.position = position
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"Position {position} is out of range [{lower}, {upper}]"
        )


class PositionNotAssignedError(PositionError):
    """记录尚未分配位置

    对没有位置值的记录执行移动或交换时抛出。
    """

    def __init__(self, record: Any):
        self.record = record
        super().__init__(f"{record!r} has no position assigned")


class SequenceMismatchError(PositionError):
    """两条记录不属于同一序列

    跨序列交换会在两个序列中同时留下空洞，因此直接拒绝。

    Attributes:
        scope_a: 第一条记录的分组值
        scope_b: 第二条记录的分组值
    """

    def __init__(self, scope_a: Any, scope_b: Any, message: Optional[str] = None):
        self.scope_a = scope_a
        self.scope_b = scope_b
        super().__init__(
            message or f"Records belong to different sequences: {scope_a} != {scope_b}"
        )


__all__ = [
    "PositionError",
    "PositionOutOfRangeError",
    "PositionNotAssignedError",
    "SequenceMismatchError",
]
