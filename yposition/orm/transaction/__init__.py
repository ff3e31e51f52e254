"""事务管理模块

位置维护的写操作需要与触发它的记录写入处于同一个事务中，本模块提供这一原子单元：
- TransactionContext: 一次数据库事务的状态与嵌套深度
- transaction_manager.transaction(): 开启或加入事务
- 提交抑制: 事务内 save(commit=True) 只 flush，由事务统一提交

使用示例:
    from yposition.orm import transaction_manager as tm

    with tm.transaction(session):
        item.move(2)
        other.swap(third)
"""

from .state import TransactionState
from .exceptions import (
    TransactionError,
    TransactionStateError,
    SessionMismatchError,
)
from .context import TransactionContext
from .manager import (
    TransactionManager,
    transaction_manager,
    get_current_transaction,
)

__all__ = [
    "TransactionState",
    "TransactionError",
    "TransactionStateError",
    "SessionMismatchError",
    "TransactionContext",
    "TransactionManager",
    "transaction_manager",
    "get_current_transaction",
]
