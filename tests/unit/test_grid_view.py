"""
Unit tests for the Grid View.

Note: These tests require a Qt application instance.
"""

from dataclasses import dataclass

import pytest
from PyQt5.QtCore import QItemSelectionModel

from qtprompt.dialog.grid_filter import FilterOperator
from qtprompt.dialog.schema import SelectionMode
from qtprompt.dialog.ui.grid_view import GridView
from qtprompt.services.dialog_services import (
    MockCsvWriter,
    MockDialogServices,
    MockFileDialogService,
)


ROWS = [
    {"Name": "Alice", "City": "Paris"},
    {"Name": "Bob", "City": "Berlin"},
    {"Name": "Carol", "City": "Amsterdam"},
]


@dataclass
class Server:
    host: str
    port: int


def _grid(rows=ROWS, services=None, result=None, **kwargs) -> GridView:
    return GridView(
        1,
        rows,
        {} if result is None else result,
        services or MockDialogServices(),
        **kwargs,
    )


def _select_rows(grid: GridView, *rows: int):
    table = grid.table()
    for row in rows:
        table.selectionModel().select(
            table.model().index(row, 0),
            QItemSelectionModel.Select | QItemSelectionModel.Rows,
        )


class TestFilter:
    def test_starts_with_and_clear(self, qapp):
        grid = _grid()
        grid.initialize()

        grid.setFilter("Name", FilterOperator.STARTS_WITH, "A")
        assert grid.displayedRows() == [ROWS[0]]
        assert grid.counterText() == "1 / 3 Results"

        grid.setFilter("Name", FilterOperator.STARTS_WITH, "")
        assert grid.displayedRows() == ROWS
        assert grid.counterText() == "3 Results"

    def test_filter_runs_on_original_rows(self, qapp):
        grid = _grid()

        grid.setFilter("City", FilterOperator.CONTAINS, "er")
        assert len(grid.displayedRows()) == 2
        grid.setFilter("City", FilterOperator.CONTAINS, "ar")
        assert grid.displayedRows() == [ROWS[0]]

    def test_initialize_resets_filter(self, qapp):
        grid = _grid()
        grid.setFilter("Name", FilterOperator.EQUALS, "Bob")

        grid.initialize()

        assert grid.filterText() == ""
        assert grid.displayedRows() == ROWS
        assert grid.table().isSortingEnabled()

    def test_hidden_search(self, qapp):
        grid = _grid(hide_search=True)
        grid.setFilter("Name", FilterOperator.EQUALS, "Bob")

        assert grid.displayedRows() == ROWS
        assert grid.counterText() == "3 Results"

    def test_as_list(self, qapp):
        grid = _grid(rows=[Server("db", 5432)], as_list=True)

        assert grid.table().columnCount() == 2
        assert grid.table().item(1, 0).text() == "port"
        assert grid.table().item(1, 1).text() == "5432"


class TestSelection:
    def test_single_row(self, qapp):
        result = {}
        grid = _grid(result=result)
        assert result["grid_select1"] is None

        _select_rows(grid, 1)

        assert result["grid_select1"] == ROWS[1]

    def test_multi_row_keeps_order(self, qapp):
        result = {}
        grid = _grid(result=result, selection_mode=SelectionMode.MULTI_ROW)

        _select_rows(grid, 2, 0)

        assert result["grid_select1"] == [ROWS[0], ROWS[2]]

    def test_single_cell(self, qapp):
        result = {}
        grid = _grid(rows=[Server("db", 5432)], result=result, selection_mode=SelectionMode.SINGLE_CELL)
        table = grid.table()

        table.selectionModel().select(table.model().index(0, 1), QItemSelectionModel.ClearAndSelect)

        assert result["grid_select1"] == "5432"

    def test_no_selection_mode(self, qapp):
        result = {}
        grid = _grid(result=result, selection_mode=SelectionMode.NONE)

        _select_rows(grid, 0)

        assert result["grid_select1"] is None

    def test_selection_follows_filter(self, qapp):
        result = {}
        grid = _grid(result=result)
        grid.setFilter("Name", FilterOperator.STARTS_WITH, "C")

        _select_rows(grid, 0)
        assert result["grid_select1"] == ROWS[2]

        grid.setFilter("Name", FilterOperator.STARTS_WITH, "")
        assert result["grid_select1"] is None

    def test_result_key(self, qapp):
        grid = GridView(3, ROWS, {}, MockDialogServices())
        assert grid.result_key == "grid_select3"


class TestExportAndExplore:
    def test_export_displayed_rows(self, qapp):
        services = MockDialogServices(file_dialog=MockFileDialogService(["/tmp/out.csv"]))
        grid = _grid(services=services)
        grid.setFilter("Name", FilterOperator.NOT_EQUALS, "Bob")

        grid.exportCsv()

        assert services.csv_writer.writes == [([ROWS[0], ROWS[2]], "/tmp/out.csv")]
        assert services.opener.opened == ["/tmp/out.csv"]

    def test_export_cancelled(self, qapp):
        services = MockDialogServices()
        grid = _grid(services=services)

        grid.exportCsv()

        assert services.csv_writer.writes == []
        assert services.opener.opened == []

    def test_export_failure_is_reported(self, qapp):
        services = MockDialogServices(
            file_dialog=MockFileDialogService(["/readonly/out.csv"]),
            csv_writer=MockCsvWriter(error=OSError("read-only file system")),
        )
        grid = _grid(services=services)
        errors = []
        grid.errorOccurred.connect(lambda title, message: errors.append((title, message)))

        grid.exportCsv()

        assert len(errors) == 1
        assert errors[0][0] == "Export Failed"
        assert services.opener.opened == []

    def test_export_reported_failure(self, qapp):
        services = MockDialogServices(
            file_dialog=MockFileDialogService(["/tmp/out.csv"]),
            csv_writer=MockCsvWriter(succeed=False),
        )
        grid = _grid(services=services)
        errors = []
        grid.errorOccurred.connect(lambda title, message: errors.append(title))

        grid.exportCsv()

        assert errors == ["Export Failed"]
        assert services.opener.opened == []

    def test_explore_uses_original_rows(self, qapp):
        services = MockDialogServices()
        grid = _grid(services=services)
        grid.setFilter("Name", FilterOperator.EQUALS, "Bob")

        grid.explore()

        assert services.table_viewer.opened == [ROWS]
