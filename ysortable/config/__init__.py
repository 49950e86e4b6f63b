"""配置模块

提供配置管理功能：
- AppSettings: 应用基础配置，支持 YAML + 环境变量
- 子配置类: SortableSettings, DatabaseSettings, LoggingSettings
- ConfigLoader: YAML 配置加载器

快速开始:
    from ysortable.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)

配置优先级: 环境变量 > YAML 文件 > 默认值
"""

from .settings import (
    AppSettings,
    SortableSettings,
    DatabaseSettings,
    LoggingSettings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    # Settings Classes
    "AppSettings",
    "SortableSettings",
    "DatabaseSettings",
    "LoggingSettings",

    # Config Loader
    "ConfigLoader",
    "load_yaml_config",
]
