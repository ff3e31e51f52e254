"""事务管理器测试

位置操作在事务中的行为：
1. 退出时提交、异常时回滚
2. 嵌套的原子单元加入外层事务
3. 事务内 save(commit=True) 只 flush
4. session 不一致时拒绝加入
5. 手动提交/回滚与状态转换
6. @transactional 装饰器
"""

import pytest
from sqlalchemy import String
from sqlalchemy.orm import Mapped, Session, mapped_column

from yposition.orm import (
    CoreModel,
    PositionFieldMixin,
    PositionMixin,
    PositionOutOfRangeError,
)
from yposition.orm.transaction import (
    SessionMismatchError,
    TransactionContext,
    TransactionManager,
    TransactionState,
    TransactionStateError,
    get_current_transaction,
    transaction_manager,
)


class TxSlide(PositionMixin, PositionFieldMixin, CoreModel):
    """事务测试用幻灯片"""
    __tablename__ = "test_tx_slide"
    __table_args__ = {'extend_existing': True}

    title: Mapped[str] = mapped_column(String(100))


def titles():
    return [slide.title for slide in TxSlide.get_ordered()]


def slide(title):
    return TxSlide.query.filter_by(title=title).one()


class TransactionTestBase:
    """公共初始化：建好 A B C 三张幻灯片"""

    @pytest.fixture(autouse=True)
    def setup_db(self, session_scope):
        self.session_scope = session_scope
        for title in "ABC":
            TxSlide(title=title).save(commit=True)

    @property
    def session(self) -> Session:
        return self.session_scope()


# ==================== 基础事务测试 ====================

class TestCommitAndRollback(TransactionTestBase):
    """提交与回滚"""

    def test_commit_on_exit(self):
        with transaction_manager.transaction(session=self.session) as tx:
            slide("A").move(2)
            slide("C").move(0)
        assert tx.state is TransactionState.COMMITTED

        self.session.rollback()
        assert titles() == ["C", "B", "A"]

    def test_exception_rolls_back_every_move(self):
        with pytest.raises(RuntimeError):
            with transaction_manager.transaction(session=self.session) as tx:
                slide("A").move(2)
                raise RuntimeError("boom")
        assert tx.state is TransactionState.ROLLED_BACK
        assert titles() == ["A", "B", "C"]

    def test_failed_move_rolls_back_earlier_moves(self):
        with pytest.raises(PositionOutOfRangeError):
            with transaction_manager.transaction(session=self.session):
                slide("A").move(2)
                slide("B").move(10)
        assert titles() == ["A", "B", "C"]

    def test_no_transaction_outside_block(self):
        assert get_current_transaction() is None
        with transaction_manager.transaction(session=self.session) as tx:
            assert get_current_transaction() is tx
        assert get_current_transaction() is None


# ==================== 嵌套 ====================

class TestNesting(TransactionTestBase):
    """嵌套的原子单元加入外层事务"""

    def test_nested_transaction_joins_outer(self):
        with transaction_manager.transaction(session=self.session) as outer:
            with transaction_manager.transaction() as inner:
                assert inner is outer
                assert outer.depth == 2
            assert outer.depth == 1
            assert outer.is_active

    def test_move_inside_transaction_does_not_commit(self):
        with transaction_manager.transaction(session=self.session) as tx:
            slide("A").move(2)
            assert tx.is_active
            assert tx.depth == 1
            assert get_current_transaction() is tx
            tx.rollback()
        assert titles() == ["A", "B", "C"]

    def test_save_commit_is_suppressed(self):
        with pytest.raises(RuntimeError):
            with transaction_manager.transaction(session=self.session) as tx:
                c = slide("C")
                c.position = 0
                c.save(commit=True)
                assert tx.is_active
                assert titles() == ["C", "A", "B"]
                raise RuntimeError("abort")
        assert titles() == ["A", "B", "C"]

    def test_save_commit_without_suppression(self):
        with transaction_manager.transaction(session=self.session, suppress_commit=False) as tx:
            assert not tx.should_suppress_commit()
            c = slide("C")
            c.position = 0
            c.save(commit=True)
        self.session.rollback()
        assert titles() == ["C", "A", "B"]

    def test_record_from_other_session_is_rejected(self, memory_engine):
        other = Session(bind=memory_engine)
        try:
            foreign = other.query(TxSlide).filter_by(title="A").one()
            with pytest.raises(SessionMismatchError) as exc_info:
                with transaction_manager.transaction(session=self.session):
                    foreign.move(2)
            assert exc_info.value.session is other
            assert exc_info.value.transaction_session is self.session
        finally:
            other.close()
        assert titles() == ["A", "B", "C"]

    def test_new_record_joins_current_transaction(self):
        with pytest.raises(RuntimeError):
            with transaction_manager.transaction(session=self.session):
                TxSlide(title="D").insert_at(0)
                assert titles() == ["D", "A", "B", "C"]
                raise RuntimeError("abort")
        assert titles() == ["A", "B", "C"]


# ==================== 手动控制 ====================

class TestManualControl(TransactionTestBase):
    """auto_commit=False 时手动提交与回滚"""

    def test_manual_commit(self):
        with transaction_manager.transaction(session=self.session, auto_commit=False) as tx:
            slide("A").move(1)
            tx.commit()
            assert tx.state is TransactionState.COMMITTED
        self.session.rollback()
        assert titles() == ["B", "A", "C"]

    def test_commit_twice_raises(self):
        with transaction_manager.transaction(session=self.session, auto_commit=False) as tx:
            tx.commit()
            with pytest.raises(TransactionStateError) as exc_info:
                tx.commit()
        assert exc_info.value.state is TransactionState.COMMITTED

    def test_manual_rollback_is_idempotent(self):
        with transaction_manager.transaction(session=self.session, auto_commit=False) as tx:
            slide("A").move(2)
            tx.rollback()
            tx.rollback()
            assert tx.state is TransactionState.ROLLED_BACK
        assert titles() == ["A", "B", "C"]

    def test_exit_without_commit_leaves_changes_uncommitted(self):
        with transaction_manager.transaction(session=self.session, auto_commit=False) as tx:
            slide("A").move(2)
        assert tx.is_active
        self.session.rollback()
        assert titles() == ["A", "B", "C"]


class TestTransactionState:
    """状态转换"""

    def test_lifecycle(self, session_scope):
        ctx = TransactionContext(session_scope())
        assert ctx.state is TransactionState.INACTIVE
        assert not ctx.should_suppress_commit()

        ctx.begin()
        assert ctx.is_active and ctx.depth == 1
        ctx.join()
        assert ctx.depth == 2
        ctx.leave()
        ctx.leave()
        assert ctx.depth == 1

        ctx.commit()
        assert ctx.state.finished
        with pytest.raises(TransactionStateError):
            ctx.rollback()
        with pytest.raises(TransactionStateError):
            ctx.begin()
        with pytest.raises(TransactionStateError):
            ctx.join()

    def test_rollback_before_begin_is_noop(self, session_scope):
        ctx = TransactionContext(session_scope())
        ctx.rollback()
        assert ctx.state is TransactionState.INACTIVE

    def test_manager_is_singleton(self):
        assert TransactionManager() is transaction_manager


# ==================== 装饰器 ====================

class TestTransactionalDecorator(TransactionTestBase):
    """@transactional 把多次移动组成一个事务"""

    def reorder(self, order):
        @transaction_manager.transactional(session=self.session_scope)
        def apply():
            for index, title in enumerate(order):
                slide(title).move(index)
        apply()

    def test_reorder_commits(self):
        self.reorder("CAB")
        self.session.rollback()
        assert titles() == ["C", "A", "B"]

    def test_reorder_failure_rolls_back_all(self):
        @transaction_manager.transactional(session=self.session_scope)
        def broken_reorder():
            slide("C").move(0)
            slide("A").move(5)

        with pytest.raises(PositionOutOfRangeError):
            broken_reorder()
        assert titles() == ["A", "B", "C"]

    def test_decorator_keeps_function_metadata(self):
        @transaction_manager.transactional(session=self.session_scope)
        def reorder_menu():
            """重排菜单"""

        assert reorder_menu.__name__ == "reorder_menu"
        assert reorder_menu.__doc__ == "重排菜单"
