"""
ORM基础模型

提供主键、时间戳和常用的CRUD操作
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar, List, Optional

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import (
    Mapped,
    Query,
    Session,
    declarative_base,
    declared_attr,
    mapped_column,
    object_session,
)

if TYPE_CHECKING:
    from typing_extensions import Self


# 声明基类
Base = declarative_base()


def to_snake_case(name: str) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Examples:
        >>> to_snake_case("MenuItem")
        'menu_item'
        >>> to_snake_case("APIRoute")
        'api_route'
    """
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    return result.lower()


class CoreModel(Base):
    """ORM基础模型类

    提供功能：
    - 自增主键 id
    - 自动表名生成（驼峰转下划线）
    - 创建/更新时间戳
    - 常用CRUD操作方法（save/delete/get/get_all）
    - 事务中 commit=True 自动抑制

    使用示例:
        from yposition.orm import CoreModel, init_database

        init_database("sqlite:///./menu.db")

        class MenuItem(CoreModel):
            title: Mapped[str] = mapped_column(String(100))

        item = MenuItem(title="首页")
        item.save(commit=True)
    """
    __abstract__ = True

    # query 属性在 init_database() 中通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]
    else:
        query = None

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return to_snake_case(cls.__name__)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=func.now(),
        comment="更新时间"
    )

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    @property
    def session(self) -> Session:
        """获取当前session

        优先使用对象已绑定的 session，其次是 query 属性的 session，
        最后回退到全局 scoped_session。
        """
        session = object_session(self)
        if session is not None:
            return session
        return self.__class__._class_session()

    @classmethod
    def _class_session(cls) -> Session:
        if cls.query is not None:
            return cls.query.session
        from .db_session import db_manager
        return db_manager.get_session()

    # ==================== CRUD 操作方法 ====================

    def save(self, commit: bool = False) -> Self:
        """保存对象（自动判断新增或更新）

        Args:
            commit: 是否立即提交，默认False
                   - 无事务时：执行 session.commit()
                   - 有事务时：commit 被抑制，但会自动 flush

        Returns:
            self: 返回自身，支持链式调用
        """
        self.session.add(self)
        self._is_commit(commit)
        return self

    def delete(self, commit: bool = False):
        """删除对象（物理删除）"""
        self.session.delete(self)
        self._is_commit(commit)

    def refresh(self, attribute_names: list = None) -> Self:
        """从数据库重新加载对象状态"""
        if attribute_names:
            self.session.refresh(self, attribute_names)
        else:
            self.session.refresh(self)
        return self

    @classmethod
    def get(cls, id: int):
        """根据ID获取对象，不存在返回None"""
        return cls._class_session().get(cls, id)

    @classmethod
    def get_all(cls) -> List:
        return cls.query.all()

    def _is_commit(self, commit=False):
        """根据参数决定是否提交

        当在事务上下文中且启用了提交抑制时，commit=True 会被忽略，
        但会自动执行 flush 以获取自动生成的字段（id, created_at 等）。
        """
        if not commit:
            return
        if self._should_suppress_commit():
            self.session.flush()
            return
        self.session.commit()

    @staticmethod
    def _should_suppress_commit() -> bool:
        from .transaction import get_current_transaction
        tx = get_current_transaction()
        if tx is not None and tx.should_suppress_commit():
            from yposition.log import transaction_logger
            transaction_logger.debug("commit=True 被事务上下文抑制")
            return True
        return False
