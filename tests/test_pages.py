import json
from datetime import datetime, timedelta, timezone

import pytest
from jinja2 import DictLoader, Environment

from crud_core.errors import TemplateRenderError
from crud_gateway import rendering

HTMX = {"HX-Request": "true"}


def test_index_renders_full_page(client):
    response = client.get("/ui/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "<!DOCTYPE html>" in response.text
    for name in ("audit_log", "order_items", "products"):
        assert f"/ui/tables/{name}" in response.text


def test_root_redirects_to_ui(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/ui/"


def test_table_fragment_for_htmx(client):
    response = client.get("/ui/tables/products?page_size=5", headers=HTMX)
    assert response.status_code == 200
    assert "<!DOCTYPE html>" not in response.text
    assert 'id="table-fragment"' in response.text
    assert "Widget 01" in response.text
    assert "Widget 06" not in response.text
    assert "Page 1 of 5 (25 rows)" in response.text
    assert "/ui/tables/products/form?key=3" in response.text


def test_table_fragment_escapes_values(client):
    client.post("/v1/tables/products/rows", json={"id": 50, "name": "<script>alert(1)</script>"})
    response = client.get("/ui/tables/products?q=script", headers=HTMX)
    assert "<script>alert(1)</script>" not in response.text
    assert "&lt;script&gt;" in response.text


def test_keyless_table_fragment_is_read_only(client):
    response = client.get("/ui/tables/audit_log", headers=HTMX)
    assert response.status_code == 200
    assert "rows are read-only" in response.text
    assert "seeded" in response.text
    assert "New row" not in response.text


def test_read_only_mode_hides_editing(client, settings_override):
    settings_override(CRUD_READ_ONLY=True)
    response = client.get("/ui/tables/products", headers=HTMX)
    assert "New row" not in response.text
    assert "Delete" not in response.text


def test_create_form(client):
    response = client.get("/ui/tables/products/form", headers=HTMX)
    assert response.status_code == 200
    assert "New products row" in response.text
    assert 'name="id"' not in response.text
    assert 'name="name"' in response.text
    assert 'type="date"' in response.text
    assert "placeholder=\"'draft'\"" in response.text or "placeholder=\"&#39;draft&#39;\"" in response.text


def test_edit_form(client):
    response = client.get("/ui/tables/products/form?key=3", headers=HTMX)
    assert response.status_code == 200
    assert "Edit products row 3" in response.text
    assert 'value="Widget 03"' in response.text
    assert 'value="4.50"' in response.text
    assert "readonly" in response.text


def test_edit_form_missing_row(client):
    response = client.get("/ui/tables/products/form?key=999", headers=HTMX)
    assert response.status_code == 404
    assert "Not found" in response.text


def test_unknown_table_page(client):
    response = client.get("/ui/tables/ghosts")
    assert response.status_code == 404
    assert "Table not found: ghosts" in response.text


def test_upsert_from_form(client):
    response = client.post(
        "/ui/tables/products/upsert",
        data={"name": "Form Widget", "price": "2.75", "in_stock": "true", "released_on": "", "status": ""},
        headers=HTMX,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["data"] == {"success": True, "message": "Row created", "row_key": "26"}
    trigger = json.loads(response.headers["HX-Trigger"])
    assert trigger["rowSaved"]["table"] == "products"
    assert trigger["rowSaved"]["row_key"] == "26"

    record = client.get("/v1/tables/products/rows/26").json()["data"]["record"]
    assert record["status"] == "draft"
    assert record["released_on"] is None


def test_upsert_from_form_invalid_value(client):
    response = client.post("/ui/tables/products/upsert", data={"id": "1", "price": "lots"})
    assert response.status_code == 422
    assert response.json()["data"]["success"] is False


def test_delete_from_list(client):
    response = client.post("/ui/tables/products/delete?key=5", headers=HTMX)
    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Row deleted"
    assert "rowDeleted" in json.loads(response.headers["HX-Trigger"])
    assert client.get("/v1/tables/products/rows/5").status_code == 404


def test_form_mutations_respect_read_only(client, settings_override):
    settings_override(CRUD_READ_ONLY=True)
    response = client.post("/ui/tables/products/delete?key=5")
    assert response.status_code == 403
    assert response.json()["code"] == 403


@pytest.fixture
def broken_templates(monkeypatch):
    environment = Environment(
        loader=DictLoader({"index.html": "{% for %}", "error.html": "{% if %}"})
    )
    monkeypatch.setattr(rendering, "get_environment", lambda: environment)
    return environment


def test_render_template_wraps_jinja_errors(broken_templates):
    with pytest.raises(TemplateRenderError) as excinfo:
        rendering.render_template("index.html")
    assert excinfo.value.status_code == 500


def test_template_failure_serves_plain_error_page(client, broken_templates):
    response = client.get("/ui/")
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("text/html")
    assert response.text == "<p>500: request failed</p>"


def test_aware_datetime_keeps_offset_in_form():
    aware = datetime(2024, 3, 1, 9, 30, tzinfo=timezone(timedelta(hours=2)))
    naive = aware.replace(tzinfo=None)

    assert rendering._input_value_filter(aware) == "2024-03-01T09:30:00+02:00"
    assert rendering._input_type_filter("datetime", aware) == "text"
    assert rendering._input_value_filter(naive) == "2024-03-01T09:30:00"
    assert rendering._input_type_filter("datetime", naive) == "datetime-local"
    assert rendering._input_type_filter("datetime") == "datetime-local"
