"""
Grid View

Table of row objects with a live filter bar, selection capture into the
Result Map and CSV export / explore actions.
"""

from collections.abc import MutableMapping
from typing import Any, Optional

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ...models.rows import cell_text, cell_value, columns_for
from ...services.dialog_services import DialogServices
from ...services.interfaces import FileDialogKind
from ..grid_filter import FilterOperator, apply_filter, counter_text, rows_as_list
from ..logging import logger
from ..schema import SelectionMode, grid_select_key

# Item data role holding the row's index into the displayed list
ROW_INDEX_ROLE = Qt.UserRole


class GridView(QWidget):
    """
    One grid instance bound to ``grid_select<index>`` in the Result Map.

    The filter always runs over the original rows, never the displayed
    subset.
    """

    activated = pyqtSignal(int)  # grid index
    selectionChanged = pyqtSignal(int, object)  # grid index, selection payload
    errorOccurred = pyqtSignal(str, str)  # title, message

    def __init__(
        self,
        index: int,
        rows: list[Any],
        result: MutableMapping,
        services: DialogServices,
        selection_mode: SelectionMode = SelectionMode.SINGLE_ROW,
        hide_search: bool = False,
        as_list: bool = False,
        parent: Optional[QWidget] = None,
    ):
        super().__init__(parent)
        self.index = index
        self._rows = rows_as_list(rows) if as_list else list(rows)
        self._displayed: list[Any] = list(self._rows)
        self._columns = columns_for(self._rows)
        self._result = result
        self._services = services
        self._selection_mode = selection_mode
        self._hide_search = hide_search

        self._column_combo: Optional[QComboBox] = None
        self._operator_combo: Optional[QComboBox] = None
        self._filter_input: Optional[QLineEdit] = None
        self._counter_label: Optional[QLabel] = None

        self._result[self.result_key] = None
        self._setup_ui()
        self._populate()

    @property
    def result_key(self) -> str:
        return grid_select_key(self.index)

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        if not self._hide_search:
            filter_row = QHBoxLayout()

            self._column_combo = QComboBox()
            self._column_combo.addItems(self._columns)
            self._column_combo.currentIndexChanged.connect(self._refilter)
            filter_row.addWidget(self._column_combo)

            self._operator_combo = QComboBox()
            for operator in FilterOperator:
                self._operator_combo.addItem(operator.value, operator.value)
            self._operator_combo.currentIndexChanged.connect(self._refilter)
            filter_row.addWidget(self._operator_combo)

            self._filter_input = QLineEdit()
            self._filter_input.setPlaceholderText("Filter...")
            self._filter_input.setClearButtonEnabled(True)
            self._filter_input.textChanged.connect(self._refilter)
            filter_row.addWidget(self._filter_input, 1)

            self._counter_label = QLabel()
            filter_row.addWidget(self._counter_label)

            layout.addLayout(filter_row)

        self._table = QTableWidget()
        self._table.setColumnCount(len(self._columns))
        self._table.setHorizontalHeaderLabels(self._columns)
        self._table.horizontalHeader().setSectionResizeMode(QHeaderView.Interactive)
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self._apply_selection_mode()
        self._table.itemSelectionChanged.connect(self._on_selection_changed)
        layout.addWidget(self._table)

        self.setLayout(layout)

    def _apply_selection_mode(self):
        """Map the dialog selection mode onto the table."""
        mode = self._selection_mode
        if mode == SelectionMode.NONE:
            self._table.setSelectionMode(QAbstractItemView.NoSelection)
            self._table.setFocusPolicy(Qt.NoFocus)
        elif mode == SelectionMode.SINGLE_CELL:
            self._table.setSelectionBehavior(QAbstractItemView.SelectItems)
            self._table.setSelectionMode(QAbstractItemView.SingleSelection)
        elif mode == SelectionMode.SINGLE_ROW:
            self._table.setSelectionBehavior(QAbstractItemView.SelectRows)
            self._table.setSelectionMode(QAbstractItemView.SingleSelection)
        else:
            self._table.setSelectionBehavior(QAbstractItemView.SelectRows)
            self._table.setSelectionMode(QAbstractItemView.ExtendedSelection)

    def _populate(self):
        """Fill the table with the displayed rows."""
        sorting = self._table.isSortingEnabled()
        self._table.setSortingEnabled(False)
        self._table.clearSelection()
        self._table.setRowCount(len(self._displayed))

        for r, row in enumerate(self._displayed):
            for c, column in enumerate(self._columns):
                item = QTableWidgetItem(cell_text(row, column))
                item.setData(ROW_INDEX_ROLE, r)
                self._table.setItem(r, c, item)

        self._table.setSortingEnabled(sorting)
        self._update_counter()
        self._on_selection_changed()

    def _update_counter(self):
        if self._counter_label is None:
            return
        self._counter_label.setText(
            counter_text(len(self._displayed), len(self._rows), self.isFiltered())
        )

    def _refilter(self, *_args):
        """Recompute the displayed rows from the original rows."""
        self._displayed = apply_filter(
            self._rows, self.filterColumn(), self.filterOperator(), self.filterText()
        )
        self._populate()
        self.activated.emit(self.index)

    def _selected_row_indexes(self) -> list[int]:
        """Displayed-list indexes of the selected rows, in visual order."""
        model_rows = sorted(index.row() for index in self._table.selectionModel().selectedRows())
        indexes = []
        for visual_row in model_rows:
            item = self._table.item(visual_row, 0)
            if item is not None:
                indexes.append(item.data(ROW_INDEX_ROLE))
        return indexes

    def _selection_payload(self) -> Any:
        mode = self._selection_mode
        if mode == SelectionMode.NONE:
            return None

        if mode == SelectionMode.SINGLE_CELL:
            cells = self._table.selectedIndexes()
            if not cells:
                return None
            cell = cells[0]
            item = self._table.item(cell.row(), cell.column())
            if item is None:
                return None
            row = self._displayed[item.data(ROW_INDEX_ROLE)]
            return str(cell_value(row, self._columns[cell.column()]))

        rows = [self._displayed[i] for i in self._selected_row_indexes()]
        if mode == SelectionMode.SINGLE_ROW:
            return rows[0] if rows else None
        return rows or None

    def _on_selection_changed(self):
        if getattr(self._result, "is_frozen", False):
            return
        payload = self._selection_payload()
        self._result[self.result_key] = payload
        self.selectionChanged.emit(self.index, payload)
        if self._table.hasFocus():
            self.activated.emit(self.index)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def initialize(self):
        """Reset the filter to the original rows and enable sorting."""
        if self._filter_input is not None:
            self._filter_input.blockSignals(True)
            self._filter_input.clear()
            self._filter_input.blockSignals(False)
        self._displayed = list(self._rows)
        self._table.setSortingEnabled(False)
        self._populate()
        # -1 keeps the natural row order until the user sorts
        self._table.horizontalHeader().setSortIndicator(-1, Qt.AscendingOrder)
        self._table.setSortingEnabled(True)
        self._table.resizeColumnsToContents()

    def setFilter(self, column: str, operator: FilterOperator, text: str):
        """Set all three filter inputs, refiltering once."""
        if self._hide_search:
            return
        for widget in (self._column_combo, self._operator_combo, self._filter_input):
            widget.blockSignals(True)
        self._column_combo.setCurrentIndex(self._columns.index(column) if column in self._columns else 0)
        self._operator_combo.setCurrentIndex(self._operator_combo.findData(FilterOperator(operator).value))
        self._filter_input.setText(text)
        for widget in (self._column_combo, self._operator_combo, self._filter_input):
            widget.blockSignals(False)
        self._refilter()

    def filterColumn(self) -> Optional[str]:
        if self._column_combo is None or self._column_combo.currentIndex() < 0:
            return None
        return self._column_combo.currentText()

    def filterOperator(self) -> FilterOperator:
        if self._operator_combo is None:
            return FilterOperator.CONTAINS
        return FilterOperator(self._operator_combo.currentData() or FilterOperator.CONTAINS.value)

    def filterText(self) -> str:
        if self._filter_input is None:
            return ""
        return self._filter_input.text()

    def isFiltered(self) -> bool:
        return bool(self.filterText())

    def counterText(self) -> str:
        if self._counter_label is None:
            return counter_text(len(self._displayed), len(self._rows), False)
        return self._counter_label.text()

    def rows(self) -> list[Any]:
        """Original rows."""
        return list(self._rows)

    def displayedRows(self) -> list[Any]:
        """Rows currently shown (after filtering), in display order."""
        order = []
        for visual_row in range(self._table.rowCount()):
            item = self._table.item(visual_row, 0)
            if item is not None:
                order.append(self._displayed[item.data(ROW_INDEX_ROLE)])
        return order if len(order) == len(self._displayed) else list(self._displayed)

    def table(self) -> QTableWidget:
        return self._table

    def exportCsv(self):
        """Write the displayed rows to a chosen CSV file and open it."""
        try:
            path = self._services.file_dialog.show(FileDialogKind.SAVE, f"grid{self.index}.csv")
        except Exception as e:
            logger.error(f"File dialog failed: {e}", exc_info=True)
            self.errorOccurred.emit("Export Failed", f"Could not show the file dialog:\n{e}")
            return
        if not path:
            return

        try:
            written = self._services.csv_writer.write(self.displayedRows(), path)
        except Exception as e:
            logger.error(f"CSV export to {path} failed: {e}", exc_info=True)
            self.errorOccurred.emit("Export Failed", f"Failed to write {path}:\n{e}")
            return
        if not written:
            logger.error(f"CSV export to {path} reported failure")
            self.errorOccurred.emit("Export Failed", f"Failed to write {path}.")
            return

        try:
            self._services.opener.open(path)
        except Exception as e:
            logger.error(f"Failed to open {path}: {e}", exc_info=True)
            self.errorOccurred.emit("Error", f"Exported to {path} but could not open it:\n{e}")

    def explore(self):
        """Show every original row in the independent table viewer."""
        try:
            self._services.table_viewer.open(self.rows())
        except Exception as e:
            logger.error(f"Table viewer failed: {e}", exc_info=True)
            self.errorOccurred.emit("Error", f"Could not open the table viewer:\n{e}")
