"""
ORM基础模型

提供声明基类和常用的CRUD操作
"""

from __future__ import annotations

from typing import ClassVar, Optional, TYPE_CHECKING

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, Query, Session, declarative_base, mapped_column

if TYPE_CHECKING:
    from typing_extensions import Self


# 声明基类
Base = declarative_base()


class CoreModel(Base):
    """ORM基础模型类

    提供功能：
    - 自增整数主键
    - 常用CRUD操作方法

    使用示例:
        from ysortable.orm import CoreModel, init_database

        # 初始化数据库
        init_database("sqlite:///./test.db")

        # 定义模型
        class Banner(CoreModel, SortFieldMixin, SortableMixin):
            __tablename__ = "banner"

            title: Mapped[str] = mapped_column(String(50))

        # 使用
        banner = Banner(title="首页")
        banner.save(commit=True)
    """
    __abstract__ = True

    # 注意：query 属性需要在 init_database 后通过 scoped_session.query_property() 设置
    # 类型标注仅在 TYPE_CHECKING 时生效，运行时由 init_database() 动态设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]

    query = None

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    @property
    def session(self) -> Session:
        """获取当前session

        优先从 query 属性获取 session，如果不可用则从全局 scoped_session 获取
        """
        if self.__class__.query is not None:
            return self.__class__.query.session
        from .db_session import db_manager
        return db_manager.get_session()

    # ==================== CRUD 操作方法 ====================

    def save(self, commit: bool = False) -> Self:
        """保存对象（自动判断新增或更新）

        Args:
            commit: 是否立即提交，默认False

        Returns:
            self: 返回自身，支持链式调用
        """
        # session.add() 是幂等的，对已在 session 中的对象调用是安全的
        self.session.add(self)
        if commit:
            self.session.commit()
        return self

    def delete(self, commit: bool = False):
        """删除对象"""
        self.session.delete(self)
        if commit:
            self.session.commit()

    @classmethod
    def get(cls, id: int) -> Optional[Self]:
        """根据ID获取对象，不存在返回None"""
        return cls.query.session.get(cls, id)

    @classmethod
    def get_all(cls):
        """获取所有对象"""
        return cls.query.all()


__all__ = [
    "Base",
    "CoreModel",
]
