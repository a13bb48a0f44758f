"""路由模块聚合，方便 FastAPI 入口按需导入。"""

from . import admin, pages, tables

__all__ = ["admin", "pages", "tables"]
