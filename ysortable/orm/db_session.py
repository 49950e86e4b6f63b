"""
数据库会话管理

排序操作通过 Model.query.session 访问数据库，本模块负责创建引擎、
scoped_session，并把 query 属性挂到 CoreModel 上。

公开 API:
- db_manager: 数据库管理器单例
- init_database(): 初始化数据库连接
- get_engine(): 获取数据库引擎
- db_session_scope(): 上下文管理器方式管理 session
- with_db_session(): 装饰器方式管理 session
"""

from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ysortable.log import get_logger

logger = get_logger("ysortable.orm.session")

# SQLite 内存库只能在同一个连接上看到已建的表
_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")

__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'db_session_scope',
    'with_db_session',
]


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from ysortable.orm import db_manager

        db_manager.init(database_url="sqlite:///./app.db")
        session = db_manager.get_session()
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._engine = None
            cls._instance._session_scope = None
        return cls._instance

    @property
    def engine(self):
        """数据库引擎

        Raises:
            RuntimeError: 数据库未初始化
        """
        if self._engine is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None and self._session_scope is not None

    def init(
        self,
        database_url: str = None,
        echo: bool = False,
        pool_pre_ping: bool = True,
        config: Any = None,
        auto_setup_query: bool = True,
    ):
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL（提供 config 时以 config 为准）
            echo: 是否输出SQL语句
            pool_pre_ping: 连接前是否ping
            config: DatabaseSettings 实例
            auto_setup_query: 是否设置 CoreModel.query，默认 True

        Returns:
            tuple: (engine, session_scope)

        Raises:
            ValueError: 未提供数据库URL
        """
        if config is not None:
            database_url = getattr(config, "url", database_url)
            echo = getattr(config, "echo", echo)
            pool_pre_ping = getattr(config, "pool_pre_ping", pool_pre_ping)

        if not database_url:
            raise ValueError("database_url 是必需的，请通过参数或 config 提供")

        if database_url in _MEMORY_SQLITE_URLS:
            self._engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self._engine = create_engine(database_url, echo=echo, pool_pre_ping=pool_pre_ping)

        self._session_scope = scoped_session(sessionmaker(autoflush=True, bind=self._engine))

        if auto_setup_query:
            # 延迟导入，base_model 会反向引用本模块
            from .base_model import CoreModel
            CoreModel.query = self._session_scope.query_property()

        logger.info(f"数据库初始化完成: {self._engine.url!r}")
        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """获取当前作用域的 session，需要自行提交和清理"""
        if self._session_scope is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._session_scope()

    def cleanup(self):
        """移除当前作用域的 session（幂等）"""
        if self._session_scope is not None:
            self._session_scope.remove()

    def dispose(self):
        """释放引擎并重置状态"""
        self.cleanup()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None


db_manager = DatabaseManager()


def init_database(database_url: str = None, **kwargs):
    """初始化数据库连接，参数见 DatabaseManager.init()

    使用示例:
        engine, session = init_database("sqlite:///./app.db")
        engine, session = init_database(config=settings.database)
    """
    return db_manager.init(database_url, **kwargs)


def get_engine():
    """获取数据库引擎（未初始化时抛出 RuntimeError）"""
    return db_manager.engine


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """session 上下文管理器

    正常退出时提交（auto_commit=True），异常时回滚并继续抛出，最后移除 session。

    使用示例:
        with db_session_scope():
            Banner.get(1).move_up()
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


def with_db_session(auto_commit: bool = True):
    """把 session 作为第一个参数注入被装饰函数

    使用示例:
        @with_db_session()
        def reorder_banners(session, ids):
            Banner.set_new_order(ids)
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with db_session_scope(auto_commit=auto_commit) as session:
                return func(session, *args, **kwargs)
        return wrapper
    return decorator
