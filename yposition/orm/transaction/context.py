"""事务上下文

一个 TransactionContext 对应一次真正的数据库事务。位置维护的原子单元
（平移 + 记录写入）在已有事务中执行时只增加 depth，不单独提交。
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from yposition.log import get_logger

from .state import TransactionState
from .exceptions import TransactionStateError

logger = get_logger("yposition.orm.transaction")


class TransactionContext:
    """事务上下文

    Args:
        session: 事务使用的 session
        auto_commit: 最外层退出时是否自动提交
        suppress_commit: 事务内 save(commit=True) 是否只 flush 不提交

    Attributes:
        depth: 当前嵌套的原子单元层数，最外层为 1
    """

    def __init__(self, session: Session, auto_commit: bool = True, suppress_commit: bool = True):
        self.session = session
        self.auto_commit = auto_commit
        self.suppress_commit = suppress_commit
        self.state = TransactionState.INACTIVE
        self.depth = 0

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def begin(self) -> TransactionContext:
        if self.state is not TransactionState.INACTIVE:
            raise TransactionStateError(self.state, "开始")
        self.state = TransactionState.ACTIVE
        self.depth = 1
        logger.debug("事务开始")
        return self

    def join(self) -> TransactionContext:
        """嵌套的原子单元加入本事务"""
        if not self.is_active:
            raise TransactionStateError(self.state, "加入")
        self.depth += 1
        logger.debug(f"加入现有事务 (depth={self.depth})")
        return self

    def leave(self) -> None:
        if self.depth > 1:
            self.depth -= 1

    def commit(self) -> None:
        if not self.is_active:
            raise TransactionStateError(self.state, "提交")
        try:
            self.session.commit()
        except Exception:
            self.state = TransactionState.FAILED
            raise
        self.state = TransactionState.COMMITTED
        logger.debug("事务提交成功")

    def rollback(self) -> None:
        """回滚事务，已回滚时不做任何事"""
        if self.state is TransactionState.COMMITTED:
            raise TransactionStateError(self.state, "回滚")
        if self.state.finished or self.state is TransactionState.INACTIVE:
            return
        try:
            self.session.rollback()
        except Exception as e:
            self.state = TransactionState.FAILED
            logger.error(f"事务回滚失败: {e}")
            raise
        self.state = TransactionState.ROLLED_BACK
        logger.debug("事务已回滚")

    def should_suppress_commit(self) -> bool:
        """CoreModel.save(commit=True) 据此决定是否只 flush"""
        return self.is_active and self.suppress_commit

    def __repr__(self) -> str:
        return f"TransactionContext(state={self.state.value}, depth={self.depth})"
