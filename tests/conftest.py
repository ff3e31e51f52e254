"""
Pytest 公共 Fixtures

- 临时目录与文件
- 内存数据库与绑定到 CoreModel.query 的 scoped_session
- 全局位置配置隔离
"""

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from yposition.orm import Base, CoreModel
from yposition.orm.position import reset_position_settings


@pytest.fixture(scope="session")
def temp_dir(tmp_path_factory):
    return str(tmp_path_factory.mktemp("yposition"))


@pytest.fixture
def temp_file(tmp_path):
    """在 tmp_path 下写入文件并返回路径"""

    def _write(filename: str, content: str = "") -> str:
        path = tmp_path / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture(autouse=True)
def isolate_position_settings(monkeypatch):
    """每个测试使用干净的全局位置配置，不受外部 YPOS_ 环境变量影响"""
    for key in list(os.environ):
        if key.startswith("YPOS_"):
            monkeypatch.delenv(key, raising=False)
    reset_position_settings()
    yield
    reset_position_settings()


@pytest.fixture
def memory_engine():
    """内存数据库引擎，StaticPool 让所有 session 共用同一个连接"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_scope(memory_engine):
    """建好表的 scoped_session，并设置为 CoreModel.query 的来源"""
    scope = scoped_session(sessionmaker(autoflush=False, bind=memory_engine))
    CoreModel.query = scope.query_property()
    yield scope
    scope.remove()


@pytest.fixture
def sample_yaml_config(temp_file):
    return temp_file("config/settings.yaml", """
database:
  url: "sqlite:///test.db"
  pool_size: 5

logging:
  level: "DEBUG"
  enable_console: false

position:
  field: "sort_index"
  initial_position: 1
  validate_bounds: false
  scope:
    - "menu_id"
""")


@pytest.fixture
def log_dir(tmp_path):
    path = tmp_path / "logs"
    path.mkdir()
    return str(path)
