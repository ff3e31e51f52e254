"""事务状态"""

from enum import Enum


class TransactionState(str, Enum):
    """事务状态

        INACTIVE -> ACTIVE -> COMMITTED
                       |
                       +--> ROLLED_BACK
                       |
                       +--> FAILED（提交或回滚本身出错）
    """

    INACTIVE = "inactive"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (TransactionState.COMMITTED, TransactionState.ROLLED_BACK)
