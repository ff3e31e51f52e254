"""
数据库会话管理模块

公开 API:
- db_manager: 数据库管理器单例
- init_database(): 初始化数据库连接
- get_engine(): 获取数据库引擎
- db_session_scope(): 脚本/任务场景的上下文管理器

位置维护的平移语句和记录写入都走同一个 scoped_session，
未显式传入 session 的 SQLAlchemySequenceStore 最终会落到这里。
"""

import os
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import QueuePool, StaticPool

from yposition.config import DatabaseSettings
from yposition.log import get_logger

logger = get_logger("yposition.orm.session")

__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'db_session_scope',
]

_NOT_INITIALIZED = "数据库未初始化，请先调用 init_database()"


def _engine_options(settings: DatabaseSettings) -> dict:
    """按数据库类型生成 create_engine 参数

    - SQLite 内存库: StaticPool，所有 session 共享同一连接，否则每个连接都是一个空库
    - SQLite 文件库: QueuePool，关闭同线程检查
    - 其他数据库: 直接使用连接池配置
    """
    url = settings.url
    pool = {
        "pool_size": settings.pool_size,
        "max_overflow": settings.max_overflow,
        "pool_timeout": settings.pool_timeout,
        "pool_recycle": settings.pool_recycle,
        "pool_pre_ping": settings.pool_pre_ping,
    }
    if not url.startswith("sqlite:///"):
        return pool

    db_path = url[len("sqlite:///"):]
    if db_path in ("", ":memory:"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

    logger.info(f"SQLite文件数据库路径: {os.path.abspath(db_path)}")
    return {
        "connect_args": {"check_same_thread": False, "timeout": settings.pool_timeout},
        "poolclass": QueuePool,
        **pool,
    }


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from yposition.orm import db_manager

        db_manager.init("sqlite:///./menu.db")
        session = db_manager.get_session()
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._engine: Optional[Engine] = None
        self._session_scope: Optional[scoped_session] = None
        self._initialized = True

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._engine

    @property
    def session_scope(self) -> scoped_session:
        if self._session_scope is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None and self._session_scope is not None

    def init(
        self,
        database_url: str = None,
        echo: bool = None,
        config: DatabaseSettings = None,
        scopefunc: Callable = None,
        auto_setup_query: bool = True,
        **pool_options,
    ):
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL，优先于 config.url
            echo: 是否输出SQL语句，优先于 config.echo
            config: 数据库配置（DatabaseSettings），不传时使用默认值
            scopefunc: scoped_session 作用域函数，默认按线程隔离
            auto_setup_query: 是否自动设置 CoreModel.query 属性
            **pool_options: 覆盖连接池配置（pool_size、max_overflow 等）

        Returns:
            tuple: (engine, session_scope)

        Raises:
            ValueError: 未提供数据库连接URL
        """
        overrides = dict(pool_options)
        if database_url:
            overrides["url"] = database_url
        if echo is not None:
            overrides["echo"] = echo
        settings = (config or DatabaseSettings()).model_copy(update=overrides)

        if not settings.url:
            raise ValueError("database_url 是必需的，请通过参数或 config 提供")

        logger.info(f"数据库配置URL: {settings.url}")
        try:
            self._engine = create_engine(settings.url, echo=settings.echo, **_engine_options(settings))
        except Exception as e:
            logger.error(f"创建数据库引擎失败: {e}")
            raise
        logger.info(f"数据库引擎创建成功（{self._engine.pool.__class__.__name__}）")

        session_maker = sessionmaker(autocommit=False, autoflush=True, bind=self._engine)
        self._session_scope = scoped_session(session_maker, scopefunc=scopefunc)

        if auto_setup_query:
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()
            logger.debug("CoreModel.query 属性已自动设置")

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """当前作用域的 session，需要自行提交和清理，推荐使用 db_session_scope()"""
        return self.session_scope()

    def cleanup(self):
        """提交未完成的变更并移除当前 session（可重复调用）"""
        if self._session_scope is None or not self._session_scope.registry.has():
            return

        session = self._session_scope()
        if session.dirty or session.new or session.deleted:
            try:
                session.commit()
            except Exception as e:
                logger.warning(f"自动提交失败，回滚: {e}")
                session.rollback()
        self._session_scope.remove()


db_manager = DatabaseManager()


def init_database(database_url: str = None, **kwargs):
    """初始化数据库连接，参数见 DatabaseManager.init()

    使用示例:
        engine, session = init_database("sqlite:///./menu.db")
        engine, session = init_database(config=settings.database)
    """
    return db_manager.init(database_url, **kwargs)


def get_engine() -> Engine:
    return db_manager.engine


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """session 上下文管理器

    正常退出时提交，异常时回滚，最后清理 session。

    使用示例:
        with db_session_scope():
            MenuItem(title="首页").save()
    """
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_manager.cleanup()
