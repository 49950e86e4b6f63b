"""ORM 记录存储

基于 SQLAlchemy 的记录存储，所有查询和批量更新都在数据库端执行。

使用示例:
    from ysortable.orm.sortable.stores import ORMRecordStore

    # 使用模型绑定的会话（Model.query.session）
    store = ORMRecordStore(Banner)

    # 或者显式指定会话
    store = ORMRecordStore(Banner, session=db_session)
"""

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Type

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..sortable_protocols import RankCondition
from .base import BaseRecordStore, Partition


class ORMRecordStore(BaseRecordStore):
    """基于 SQLAlchemy 模型的记录存储

    更新语句使用 update(model)，SQLAlchemy 会同步会话中已加载对象的属性，
    调用方持有的对象与数据库保持一致。

    Attributes:
        model: 模型类
        use_savepoint: atomic() 是否使用保存点（SAVEPOINT），
            为 False 时由调用方的事务保证原子性
    """

    def __init__(
        self,
        model: Type,
        session: Session = None,
        key_field: str = "id",
        use_savepoint: bool = False,
    ):
        super().__init__(key_field=key_field)
        self.model = model
        self.use_savepoint = use_savepoint
        self._session = session

    @property
    def session(self) -> Session:
        """获取数据库会话（未显式指定时使用 model.query.session）"""
        if self._session is not None:
            return self._session
        query = getattr(self.model, "query", None)
        if query is None:
            raise RuntimeError(
                f"{self.model.__name__}.query 未设置。请先调用 init_database() "
                "或在创建 ORMRecordStore 时传入 session 参数。"
            )
        return query.session

    # ==================== 内部方法 ====================

    def _column(self, field: str):
        return getattr(self.model, field)

    def _filter(self, stmt, field: str, partition: Partition = None,
                condition: Optional[RankCondition] = None):
        """为语句添加分组过滤和范围条件"""
        for name, value in (partition or {}).items():
            column = self._column(name)
            if value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        if condition is not None:
            stmt = stmt.where(condition.apply(self._column(field)))
        return stmt

    # ==================== 查询 ====================

    def query_max(self, field: str, partition: Partition = None) -> Optional[int]:
        stmt = self._filter(select(func.max(self._column(field))), field, partition)
        return self.session.execute(stmt).scalar()

    def query_min(self, field: str, partition: Partition = None) -> Optional[int]:
        stmt = self._filter(select(func.min(self._column(field))), field, partition)
        return self.session.execute(stmt).scalar()

    def query_ordered(
        self,
        field: str,
        partition: Partition = None,
        descending: bool = False,
        limit: Optional[int] = None,
        condition: Optional[RankCondition] = None,
    ) -> List[Any]:
        column = self._column(field)
        key_column = self._column(self.key_field)
        stmt = self._filter(select(self.model), field, partition, condition)
        stmt = stmt.where(column.is_not(None))
        if descending:
            stmt = stmt.order_by(column.desc(), key_column.desc())
        else:
            stmt = stmt.order_by(column.asc(), key_column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def count(
        self,
        field: str,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
    ) -> int:
        stmt = self._filter(select(func.count()).select_from(self.model), field, partition, condition)
        return self.session.execute(stmt).scalar() or 0

    def get(self, key: Any) -> Optional[Any]:
        if self._is_primary_key(self.key_field):
            return self.session.get(self.model, key)
        stmt = select(self.model).where(self._column(self.key_field) == key)
        return self.session.execute(stmt).scalars().first()

    def _is_primary_key(self, field: str) -> bool:
        primary_keys = self.model.__mapper__.primary_key
        return len(primary_keys) == 1 and primary_keys[0].key == field

    # ==================== 更新 ====================

    def update_field(
        self,
        key: Any,
        field: str,
        value: Any,
        partition: Partition = None,
        key_field: Optional[str] = None,
    ) -> int:
        stmt = update(self.model).where(self._column(key_field or self.key_field) == key)
        stmt = self._filter(stmt, field, partition).values({field: value})
        return self.session.execute(stmt).rowcount

    def increment_field(
        self,
        field: str,
        delta: int,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
        exclude_key: Any = None,
    ) -> int:
        column = self._column(field)
        stmt = self._filter(update(self.model), field, partition, condition)
        if exclude_key is not None:
            stmt = stmt.where(self._column(self.key_field) != exclude_key)
        stmt = stmt.values({field: column + delta})
        return self.session.execute(stmt).rowcount

    def bulk_update_excluding(
        self,
        field: str,
        value: Any,
        partition: Partition = None,
        excluded_keys: Iterable[Any] = (),
    ) -> int:
        excluded = list(excluded_keys)
        stmt = self._filter(update(self.model), field, partition)
        if excluded:
            stmt = stmt.where(self._column(self.key_field).notin_(excluded))
        stmt = stmt.values({field: value})
        return self.session.execute(stmt).rowcount

    # ==================== 原子操作 ====================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """原子操作范围

        use_savepoint=True 时在保存点中执行，块内异常只回滚该保存点；
        否则直接在当前事务中执行。
        """
        if not self.use_savepoint:
            yield
            return
        with self.session.begin_nested():
            yield
