from datetime import date

import pytest

from crud_core.domain import SortDirection
from crud_core.errors import (
    InvalidRecord,
    QueryExecutionError,
    RecordNotFound,
    TableNotFound,
)
from crud_core.persistence import DynamicTableRepository


def test_list_tables_sorted(repo):
    assert repo.list_tables() == ["audit_log", "order_items", "products"]


def test_allowlist_hides_other_tables(db_session):
    repo = DynamicTableRepository(db_session, allowed_tables={"products"})
    assert repo.list_tables() == ["products"]
    with pytest.raises(TableNotFound):
        repo.describe("audit_log")


def test_describe_matches_declared_columns(repo):
    info = repo.describe("products")
    assert info.column_names == ["id", "name", "price", "in_stock", "released_on", "status"]
    assert info.primary_key == ["id"]
    assert info.editable is True

    id_column = info.column("id")
    assert id_column.autoincrement is True
    assert info.column("name").nullable is False
    assert info.column("name").python_type == "str"
    assert info.column("price").python_type == "Decimal"
    assert info.column("in_stock").python_type == "bool"
    assert "draft" in info.column("status").default


def test_describe_composite_and_keyless_tables(repo):
    assert repo.describe("order_items").primary_key == ["order_id", "line_no"]
    keyless = repo.describe("audit_log")
    assert keyless.primary_key == []
    assert keyless.editable is False


def test_describe_unknown_table(repo):
    with pytest.raises(TableNotFound):
        repo.describe("missing_table")


def test_paginate_slices_and_totals(repo):
    page = repo.paginate("products", page=2, page_size=10)
    assert page.total == 25
    assert len(page.rows) == 10
    assert page.rows[0]["id"] == 11
    assert page.page_count == 3
    assert page.has_next and page.has_previous

    last = repo.paginate("products", page=3, page_size=10)
    assert [row["id"] for row in last.rows] == [21, 22, 23, 24, 25]
    assert not last.has_next


def test_paginate_clamps_page_size(db_session):
    repo = DynamicTableRepository(db_session, max_page_size=7)
    page = repo.paginate("products", page_size=500)
    assert page.page_size == 7
    assert len(page.rows) == 7


def test_paginate_keyword_and_order(repo):
    page = repo.paginate(
        "products", q="gadget", order_by="id", direction=SortDirection.DESC, page_size=50
    )
    assert page.total == 5
    assert [row["id"] for row in page.rows] == [25, 20, 15, 10, 5]


def test_paginate_rejects_unknown_order_column(repo):
    with pytest.raises(InvalidRecord):
        repo.paginate("products", order_by="id; DROP TABLE products")


def test_paginate_keyless_table(repo):
    page = repo.paginate("audit_log")
    assert page.total == 1
    assert page.rows == [{"level": "info", "message": "seeded"}]
    assert repo.row_key("audit_log", page.rows[0]) is None


def test_get_row(repo):
    record = repo.get("products", "3")
    assert record["name"] == "Widget 03"
    assert float(record["price"]) == 4.5
    assert repo.row_key("products", record) == "3"


def test_get_missing_row(repo):
    with pytest.raises(RecordNotFound):
        repo.get("products", "999")


def test_get_with_non_numeric_key(repo):
    with pytest.raises(InvalidRecord):
        repo.get("products", "abc")


def test_upsert_inserts_with_generated_key(repo):
    result = repo.upsert(
        "products",
        {"name": "Sprocket", "price": "9.50", "in_stock": "on", "released_on": "2025-03-01"},
    )
    repo.commit()
    assert result.success is True
    assert result.message == "Row created"
    assert result.row_key == "26"

    record = repo.get("products", "26")
    assert record["name"] == "Sprocket"
    assert float(record["price"]) == 9.5
    assert record["in_stock"] is True
    assert record["released_on"] == date(2025, 3, 1)
    assert record["status"] == "draft"


def test_upsert_updates_existing_row(repo):
    result = repo.upsert("products", {"id": "4", "name": "Renamed", "price": ""})
    repo.commit()
    assert result.message == "Row updated"
    assert result.row_key == "4"

    record = repo.get("products", "4")
    assert record["name"] == "Renamed"
    assert record["price"] is None


def test_upsert_with_unseen_key_inserts(repo):
    result = repo.upsert("products", {"id": 100, "name": "Explicit"})
    assert result.message == "Row created"
    assert result.row_key == "100"


def test_upsert_rejects_unknown_columns(repo):
    with pytest.raises(InvalidRecord) as excinfo:
        repo.upsert("products", {"name": "x", "colour": "red"})
    assert "colour" in str(excinfo.value)


def test_upsert_rejects_bad_values(repo):
    with pytest.raises(InvalidRecord):
        repo.upsert("products", {"name": "x", "price": "cheap"})


def test_upsert_constraint_violation(repo):
    with pytest.raises(QueryExecutionError):
        repo.upsert("products", {"price": "1.00"})


def test_upsert_composite_key(repo):
    created = repo.upsert("order_items", {"order_id": "1", "line_no": "3", "sku": "S-9", "qty": "4"})
    assert created.message == "Row created"
    assert created.row_key == "1,3"

    updated = repo.upsert("order_items", {"order_id": "1", "line_no": "3", "qty": "5"})
    assert updated.message == "Row updated"
    assert repo.get("order_items", "1,3")["qty"] == 5


def test_composite_key_needs_every_part(repo):
    with pytest.raises(InvalidRecord):
        repo.get("order_items", "1")


def test_keyless_table_is_read_only(repo):
    with pytest.raises(InvalidRecord):
        repo.upsert("audit_log", {"level": "warn", "message": "nope"})
    with pytest.raises(InvalidRecord):
        repo.delete("audit_log", "info")


def test_delete_row(repo):
    result = repo.delete("products", "7")
    repo.commit()
    assert result.success is True
    assert result.row_key == "7"
    with pytest.raises(RecordNotFound):
        repo.get("products", "7")


def test_delete_missing_row(repo):
    with pytest.raises(RecordNotFound):
        repo.delete("order_items", "9,9")


@pytest.mark.parametrize("values", [{"in_stock": 5}, {"released_on": 5}])
def test_upsert_rejects_values_refused_at_bind_time(repo, values):
    with pytest.raises(InvalidRecord):
        repo.upsert("products", {"name": "x", **values})
    # the session was rolled back and stays usable
    assert repo.paginate("products").total == 25


@pytest.mark.parametrize("keyword", ["%", "_", "Gadget%"])
def test_paginate_keyword_matches_wildcards_literally(repo, keyword):
    assert repo.paginate("products", q=keyword).total == 0
