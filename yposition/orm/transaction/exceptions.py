"""事务异常"""


class TransactionError(Exception):
    """事务错误基类"""


class TransactionStateError(TransactionError):
    """当前状态下不允许的事务操作，如重复提交"""

    def __init__(self, state, action: str):
        self.state = state
        self.action = action
        super().__init__(f"无法{action}：事务状态为 {state.value}")


class SessionMismatchError(TransactionError):
    """要求加入当前事务的 session 与事务自身的 session 不同

    平移语句会写入记录所在的 session，而提交发生在事务的 session 上，
    两者不同时写入不会随事务一起提交或回滚。
    """

    def __init__(self, session, transaction_session):
        self.session = session
        self.transaction_session = transaction_session
        super().__init__("记录所在的 session 与当前事务的 session 不同，无法加入该事务")
