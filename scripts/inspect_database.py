"""
打印当前配置数据库中的表与列，用于核对网关将看到的结构。

用法示例：
    python scripts/inspect_database.py
    python scripts/inspect_database.py --table orders --config config/database.yaml
    python scripts/inspect_database.py --json
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from crud_core.errors import CrudError  # noqa: E402
from crud_core.persistence import SchemaInspector, check_connection, get_database  # noqa: E402
from crud_core.utils.config import get_database_config, get_settings  # noqa: E402
from crud_core.utils.env import load_env  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="列出数据库表结构")
    parser.add_argument("--config", help="YAML/TOML 配置文件，覆盖 CRUD_CONFIG_FILE")
    parser.add_argument(
        "--table",
        dest="tables",
        action="append",
        default=[],
        help="只显示指定表（可重复传入多次）",
    )
    parser.add_argument("--json", action="store_true", help="以 JSON 输出")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    load_env()
    if args.config:
        os.environ["CRUD_CONFIG_FILE"] = args.config
        get_settings.cache_clear()

    settings = get_settings()
    try:
        database = get_database(get_database_config(settings))
    except CrudError as exc:
        print(f"❌ {exc.message}", file=sys.stderr)
        return 1

    try:
        check_connection(database.engine)
        with database.engine.connect() as conn:
            inspector = SchemaInspector(
                lambda: conn,
                schema=database.schema,
                allowed_tables=settings.allowed_tables,
            )
            names = args.tables or inspector.list_tables()
            described = [inspector.describe(name) for name in names]
    except CrudError as exc:
        print(f"❌ {exc.message}", file=sys.stderr)
        return 1
    finally:
        database.dispose()

    if args.json:
        print(json.dumps([info.model_dump() for info in described], ensure_ascii=False, indent=2))
        return 0

    print(f"✅ {database.database_type.value}: {len(described)} 张表")
    for info in described:
        flag = "" if info.editable else "  (no primary key, read-only)"
        print(f"\n{info.name}{flag}")
        for column in info.columns:
            marks = []
            if column.primary_key:
                marks.append("PK")
            if column.autoincrement:
                marks.append("auto")
            if not column.nullable:
                marks.append("NOT NULL")
            suffix = f"  [{', '.join(marks)}]" if marks else ""
            print(f"  - {column.name}: {column.type_name}{suffix}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
