"""ysortable - 可排序记录工具包

为数据库记录维护排序字段，提供上移、下移、交换、插入、批量重排等操作。

模块:
    - ysortable.orm.sortable: 排序引擎、记录存储、SQLAlchemy 模型集成
    - ysortable.orm: 基础模型与会话管理
    - ysortable.config: 配置管理
    - ysortable.log: 日志
"""

__version__ = "0.1.0"
