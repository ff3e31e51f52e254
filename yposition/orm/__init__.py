"""ORM模块

提供位置维护所需的 ORM 基础设施：
- CoreModel: 核心模型基类，包含ID、时间戳、CRUD
- 数据库会话管理
- 事务管理（位置平移与记录写入的原子单元）
- 位置维护（PositionFieldMixin / PositionMixin / PositionMaintainer）

使用示例:
    from yposition.orm import CoreModel, PositionFieldMixin, PositionMixin, init_database

    init_database("sqlite:///./menu.db")

    class MenuItem(PositionMixin, PositionFieldMixin, CoreModel):
        __position_scope__ = "menu_id"
        menu_id: Mapped[int] = mapped_column(Integer)
        title: Mapped[str] = mapped_column(String(100))

    CoreModel.metadata.create_all(get_engine())

    home = MenuItem(menu_id=1, title="首页").save(commit=True)
    about = MenuItem(menu_id=1, title="关于").save(commit=True)
    about.move_to_start()
"""

from .core_model import Base, CoreModel
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
)
from .transaction import (
    TransactionState,
    TransactionError,
    TransactionStateError,
    SessionMismatchError,
    TransactionContext,
    TransactionManager,
    transaction_manager,
    get_current_transaction,
)
from .position import (
    PositionError,
    PositionOutOfRangeError,
    PositionNotAssignedError,
    SequenceMismatchError,
    PositionConfig,
    configure_position,
    get_position_settings,
    reset_position_settings,
    PositionAccessor,
    SequenceStore,
    MemorySequenceStore,
    SQLAlchemySequenceStore,
    PositionMaintainer,
    without_position_events,
    position_events_suppressed,
    PositionFieldMixin,
    PositionMixin,
)

__all__ = [
    "Base",
    "CoreModel",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
    "TransactionState",
    "TransactionError",
    "TransactionStateError",
    "SessionMismatchError",
    "TransactionContext",
    "TransactionManager",
    "transaction_manager",
    "get_current_transaction",
    "PositionError",
    "PositionOutOfRangeError",
    "PositionNotAssignedError",
    "SequenceMismatchError",
    "PositionConfig",
    "configure_position",
    "get_position_settings",
    "reset_position_settings",
    "PositionAccessor",
    "SequenceStore",
    "MemorySequenceStore",
    "SQLAlchemySequenceStore",
    "PositionMaintainer",
    "without_position_events",
    "position_events_suppressed",
    "PositionFieldMixin",
    "PositionMixin",
]
