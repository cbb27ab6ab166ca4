# tests/unit/test_grid_service.py
# Unit tests for the host-facing grid: mount, column/option inputs, teardown

import json

import pytest

from datagrid.exceptions import ColumnDefinitionError
from datagrid.schemas.columns import TextColumnDef
from datagrid.services.grid_service import DataGridService

OPTIONS = {"id": "orders", "persist": {"storage": "localstorage"}}


def _service(rows, storage, **kwargs):
    columns = [
        {"type": "rowNumber"},
        {"type": "text", "field": "name", "editable": True},
        {"type": "array", "field": "tags"},
    ]
    kwargs.setdefault("options", OPTIONS)
    return DataGridService(
        columns,
        rows=rows,
        storage=storage,
        debounce_seconds=0.01,
        settle_seconds=0,
        **kwargs,
    )


class TestDataGridService:

    def test_columns_from_mappings(self, sample_rows, fallback_storage):
        grid = _service(sample_rows, fallback_storage)
        assert [d.id for d in grid.store.descriptors] == ["row_number", "name", "tags"]

    def test_invalid_column_mapping(self, sample_rows, fallback_storage):
        with pytest.raises(ColumnDefinitionError):
            DataGridService([{"type": "pie"}], rows=sample_rows, storage=fallback_storage)

    def test_mixed_column_inputs(self, sample_rows, fallback_storage):
        grid = _service(sample_rows, fallback_storage)
        grid.set_columns([TextColumnDef(field="name"), {"type": "number", "field": "age"}])
        assert [d.id for d in grid.store.descriptors] == ["name", "age"]

    def test_options_from_mapping(self, sample_rows, fallback_storage):
        grid = _service(sample_rows, fallback_storage)
        grid.set_options({"id": "orders", "titleField": "name", "descriptionField": "status"})
        assert not grid.store.gallery_disabled

    def test_callbacks_reach_host(self, sample_rows, fallback_storage):
        edits, clicks = [], []
        grid = _service(sample_rows, fallback_storage, on_cell_edit=edits.append, on_detail_click=clicks.append)
        grid.store.page_cells()[0]["name"].on_commit("Chuck")
        grid.store.emit_detail_click(sample_rows[1])
        assert edits[0]["name"] == "Chuck"
        assert clicks == [sample_rows[1]]

    @pytest.mark.asyncio
    async def test_mount_restores_and_autosaves(self, sample_rows, fallback_storage, fake_redis):
        fake_redis.data["datagrid-orders"] = json.dumps({"search": "bob", "updatedAt": 1})
        grid = _service(sample_rows, fallback_storage)
        await grid.mount()
        assert grid.store.search_query == "bob"

        grid.store.set_view("gallery")
        await grid.close(flush=True)
        assert json.loads(fake_redis.data["datagrid-orders"])["view"] == "gallery"

    @pytest.mark.asyncio
    async def test_close_without_flush_drops_pending_save(self, sample_rows, fallback_storage, fake_redis):
        grid = _service(sample_rows, fallback_storage)
        await grid.mount()
        grid.store.set_view("gallery")
        await grid.close()
        assert "datagrid-orders" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_reset_state(self, sample_rows, fallback_storage, fake_redis):
        grid = _service(sample_rows, fallback_storage)
        await grid.mount()
        grid.store.set_search_query("x")
        await grid.persistence.flush()
        await grid.reset_state()
        assert grid.store.search_query == ""
        assert "datagrid-orders" not in fake_redis.data
        await grid.close()

    @pytest.mark.asyncio
    async def test_rows_update_keeps_preferences(self, sample_rows, fallback_storage):
        grid = _service(sample_rows, fallback_storage)
        await grid.mount()
        grid.store.toggle_sorting("name")
        grid.set_rows(sample_rows[:2])
        assert grid.store.row_count == 2
        assert grid.store.sort_direction("name") == "asc"
        await grid.close()
