"""事务管理器

位置维护的每个写操作（平移 + 记录自身写入）都通过 transaction() 组成一个原子单元：
已在事务中时加入外层事务，由外层决定提交；否则新建事务并在结束时提交。
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Callable, Generator, Optional, TypeVar, Union

from sqlalchemy.orm import Session

from yposition.log import get_logger

from .context import TransactionContext
from .exceptions import SessionMismatchError

logger = get_logger("yposition.orm.transaction")

T = TypeVar('T')

# 当前事务上下文（线程/协程隔离）
_current_transaction: ContextVar[Optional[TransactionContext]] = ContextVar(
    '_current_transaction', default=None
)


def get_current_transaction() -> Optional[TransactionContext]:
    """当前活跃的事务，不在事务中时返回 None"""
    tx = _current_transaction.get()
    if tx is not None and tx.is_active:
        return tx
    return None


class TransactionManager:
    """事务管理器（单例）

    使用示例:
        from yposition.orm import transaction_manager as tm

        with tm.transaction(session) as tx:
            item_a.move(0)
            item_b.swap(item_c)
        # 两个操作一起提交，任一失败则一起回滚

        @tm.transactional(session=db_manager.session_scope)
        def reorder_menu(items):
            for index, item in enumerate(items):
                item.move(index)
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def get_session(self) -> Session:
        from ..db_session import db_manager
        return db_manager.get_session()

    @contextmanager
    def transaction(
        self,
        session: Session = None,
        auto_commit: bool = True,
        suppress_commit: bool = True,
    ) -> Generator[TransactionContext, None, None]:
        """开启或加入事务

        Args:
            session: 数据库会话，不传则使用全局 session
            auto_commit: 新建事务时，正常退出是否提交
            suppress_commit: 新建事务时，事务内 save(commit=True) 是否只 flush

        Raises:
            SessionMismatchError: 已在事务中，且传入的 session 不是该事务的 session

        ⚠️ 加入外层事务时，内层抛出的异常会回滚整个外层事务，
        不要在外层捕获后继续使用同一个 session 写数据。
        """
        current = get_current_transaction()
        if current is not None:
            if session is not None and session is not current.session:
                raise SessionMismatchError(session, current.session)
            current.join()
            try:
                yield current
            except Exception:
                current.rollback()
                raise
            finally:
                current.leave()
            return

        ctx = TransactionContext(
            session if session is not None else self.get_session(),
            auto_commit=auto_commit,
            suppress_commit=suppress_commit,
        )
        token = _current_transaction.set(ctx)
        try:
            ctx.begin()
            try:
                yield ctx
            except Exception:
                ctx.rollback()
                raise
            if ctx.is_active and ctx.auto_commit:
                try:
                    ctx.commit()
                except Exception:
                    ctx.rollback()
                    raise
        finally:
            _current_transaction.reset(token)

    def transactional(self, session: Union[Session, Callable[[], Session], None] = None):
        """事务装饰器，被装饰函数内的所有位置操作组成一个事务

        Args:
            session: Session 或返回 Session 的可调用对象（如 scoped_session），
                调用时才解析；不传则使用全局 session
        """
        def decorator(func: Callable[..., T]) -> Callable[..., T]:
            @wraps(func)
            def wrapper(*args, **kwargs) -> T:
                resolved = session() if callable(session) else session
                with self.transaction(session=resolved):
                    return func(*args, **kwargs)
            return wrapper

        return decorator


# 全局单例
transaction_manager = TransactionManager()
