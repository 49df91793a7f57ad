"""
Dialog Builder

Renders a compiled layout tree into a modal QDialog and drives its
lifecycle: first-show preparation, button dispatch, validated close,
timeout and the final freeze of the Result Map.
"""

import sys
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from PyQt5.QtCore import Qt, QTimer
from PyQt5.QtGui import QFont
from PyQt5.QtWidgets import (
    QApplication,
    QDialog,
    QFrame,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLayout,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from ...models.config import DefaultsConfig
from ...services.config_service import ConfigService
from ...services.dialog_services import DialogServices
from ..layout import (
    ButtonRowNode,
    CommentNode,
    CountdownNode,
    GridNode,
    GroupNode,
    ImageNode,
    MessageNode,
    PromptNode,
    RootNode,
    StackNode,
    TabsNode,
    compile_layout,
)
from ..logging import logger
from ..parser import DialogSpecParser
from ..result_map import ResultMap
from ..schema import (
    Alignment,
    Button,
    COPY_BUTTON,
    DialogContext,
    DialogSpec,
    EXPLORE_BUTTON,
    IconKind,
    ResizeMode,
    SAVE_BUTTON,
    TIMED_OUT_KEY,
    WindowStyle,
)
from ..validation import validate
from .field_factory import FieldFactory, FieldWidget, RadioScopes
from .grid_view import GridView
from .widgets.collapsible import CollapsibleSection

# message_box(parent, title, text)
MessageBox = Callable[[QWidget, str, str], Any]

_QT_ALIGNMENT = {
    Alignment.LEFT: Qt.AlignLeft,
    Alignment.CENTER: Qt.AlignHCenter,
    Alignment.RIGHT: Qt.AlignRight,
}

# Keeps the application alive when the engine had to create it
_application: Optional[QApplication] = None


class DialogConstructionError(Exception):
    """Raised when the toolkit fails to build or show a dialog."""


class DialogState(str, Enum):
    """Lifecycle states of a PromptDialog."""
    CONSTRUCTING = "constructing"
    SHOWN = "shown"
    VALIDATING = "validating"
    CLOSING = "closing"
    CLOSED = "closed"


class PromptDialog(QDialog):
    """
    One modal dialog invocation.

    The dialog owns its Result Map; every widget binding writes into it and
    it is frozen in done(), whichever way the dialog closes.
    """

    def __init__(
        self,
        spec: DialogSpec,
        services: Optional[DialogServices] = None,
        defaults: Optional[DefaultsConfig] = None,
        message_box: Optional[MessageBox] = None,
        parent: Optional[QWidget] = None,
    ):
        owner = parent if parent is not None else spec.parent_window
        super().__init__(owner if isinstance(owner, QWidget) else None)
        self._state = DialogState.CONSTRUCTING
        self._spec = spec
        self._services = services or DialogServices.default()
        self._defaults = defaults or DefaultsConfig()
        self._message_box = message_box or self._message_dialog
        self._owner: Optional[QWidget] = owner if isinstance(owner, QWidget) else None
        self._owner_opacity: Optional[float] = None

        self._result = ResultMap.from_spec(spec)
        self._radio_scopes = RadioScopes(self)
        self._fields: dict[str, FieldWidget] = {}
        self._revealers: dict[str, list[Callable[[], None]]] = {}
        self._buttons: dict[str, QPushButton] = {}
        self._grids: list[GridView] = []
        self._active_grid: Optional[GridView] = None
        self._countdown_label: Optional[QLabel] = None
        self._remaining = spec.timeout or 0
        self._timer: Optional[QTimer] = None
        self._first_show = True

        self._setup_ui()
        self._apply_window_options()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _setup_ui(self):
        spec = self._spec
        self.setWindowTitle(spec.title)
        if spec.icon != IconKind.NONE:
            self.setWindowIcon(self._services.icons.icon(spec.icon))
        if spec.font.family or spec.font.size:
            font = QFont(self.font())
            if spec.font.family:
                font.setFamily(spec.font.family)
            if spec.font.size:
                font.setPointSize(int(spec.font.size))
            self.setFont(font)

        layout = QVBoxLayout(self)
        layout.setSpacing(8)
        self._render_root(compile_layout(spec), layout)
        self.setLayout(layout)

    def _render_root(self, root: RootNode, layout: QVBoxLayout):
        renderers = {
            ImageNode: self._render_image,
            MessageNode: self._render_message,
            StackNode: self._render_cluster,
            GroupNode: self._render_cluster,
            TabsNode: self._render_tabs,
            GridNode: self._render_grid,
            CommentNode: self._render_comment,
            CountdownNode: self._render_countdown,
            ButtonRowNode: self._render_buttons,
        }
        for node in root.children:
            renderer = renderers.get(type(node))
            if renderer is None:
                raise TypeError(f"Cannot render layout node {node!r}")
            widget = renderer(node)
            if widget is not None:
                layout.addWidget(widget)

    def _render_image(self, node: ImageNode) -> Optional[QWidget]:
        try:
            pixmap = self._services.images.decode(node.source)
        except Exception as e:
            logger.warning(f"Image could not be decoded, omitting it: {e}")
            return None
        if pixmap is None:
            logger.warning("Image could not be decoded, omitting it")
            return None
        label = QLabel()
        label.setPixmap(pixmap)
        label.setAlignment(_QT_ALIGNMENT[self._spec.content_alignment])
        return label

    def _render_message(self, node: MessageNode) -> QWidget:
        container = QWidget()
        row = QHBoxLayout(container)
        row.setContentsMargins(0, 0, 0, 0)

        if self._spec.icon != IconKind.NONE:
            icon = self._services.icons.icon(self._spec.icon)
            if not icon.isNull():
                icon_label = QLabel()
                icon_label.setPixmap(icon.pixmap(32, 32))
                icon_label.setAlignment(Qt.AlignTop)
                row.addWidget(icon_label)

        label = QLabel("\n".join(node.lines))
        label.setObjectName("message")
        label.setWordWrap(True)
        label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        label.setAlignment(_QT_ALIGNMENT[node.alignment] | Qt.AlignVCenter)
        row.addWidget(label, 1)
        return container

    def _render_tabs(self, node: TabsNode) -> QWidget:
        tabs = QTabWidget()
        for page_index, page in enumerate(node.pages):
            page_widget = QWidget()
            page_layout = QVBoxLayout(page_widget)
            reveal = [lambda i=page_index: tabs.setCurrentIndex(i)]
            for cluster in page.children:
                page_layout.addWidget(self._render_cluster(cluster, reveal))
            page_layout.addStretch()
            tabs.addTab(page_widget, page.title)
        return tabs

    def _render_cluster(
        self,
        node: Union[StackNode, GroupNode],
        reveal: Optional[list[Callable[[], None]]] = None,
    ) -> QWidget:
        reveal = list(reveal or [])

        if isinstance(node, StackNode):
            container = QWidget()
            inner = QVBoxLayout(container)
            inner.setContentsMargins(0, 0, 0, 0)
            self._render_prompts(node.children, inner, reveal)
            return container

        if node.collapsible:
            body = QWidget()
            inner = QVBoxLayout(body)
            inner.setContentsMargins(0, 0, 0, 0)
            section = CollapsibleSection(node.title, body, collapsed=node.collapsed, bordered=True)
            self._render_prompts(node.children, inner, reveal + [lambda: section.setExpanded(True)])
            return section

        if node.show_header:
            box = QGroupBox(node.title)
        else:
            box = QFrame()
            box.setFrameShape(QFrame.StyledPanel)
        inner = QVBoxLayout(box)
        self._render_prompts(node.children, inner, reveal)
        return box

    def _render_prompts(
        self,
        nodes: list[PromptNode],
        layout: QVBoxLayout,
        reveal: list[Callable[[], None]],
    ):
        for node in nodes:
            prompt = node.prompt
            field = FieldFactory.create(
                prompt,
                self._result,
                self._services,
                radio_scopes=self._radio_scopes,
                show_label=not node.collapsible,
                message_position=node.message_position,
            )
            field.errorOccurred.connect(self._show_error)
            self._fields[prompt.name] = field

            if node.collapsible:
                section = CollapsibleSection(prompt.message or prompt.name, field, collapsed=node.collapsed)
                self._revealers[prompt.name] = reveal + [lambda s=section: s.setExpanded(True)]
                layout.addWidget(section)
            else:
                self._revealers[prompt.name] = list(reveal)
                layout.addWidget(field)

    def _render_grid(self, node: GridNode) -> QWidget:
        options = self._spec.grid
        grid = GridView(
            node.index,
            node.rows,
            self._result,
            self._services,
            selection_mode=options.selection_mode,
            hide_search=options.hide_search,
            as_list=options.as_list,
        )
        grid.activated.connect(lambda _index, g=grid: self._set_active_grid(g))
        grid.errorOccurred.connect(self._show_error)
        self._grids.append(grid)
        return grid

    def _render_comment(self, node: CommentNode) -> QWidget:
        label = QLabel("\n".join(node.lines))
        label.setObjectName("comment")
        label.setWordWrap(True)
        font = QFont(label.font())
        font.setItalic(True)
        label.setFont(font)
        label.setAlignment(_QT_ALIGNMENT[self._spec.content_alignment])
        return label

    def _render_countdown(self, node: CountdownNode) -> QWidget:
        self._countdown_label = QLabel(self._countdown_text(node.seconds))
        self._countdown_label.setObjectName("countdown")
        return self._countdown_label

    def _render_buttons(self, node: ButtonRowNode) -> QWidget:
        container = QWidget()
        row = QHBoxLayout(container)
        row.setContentsMargins(0, 0, 0, 0)
        row.addStretch()
        for button in node.buttons:
            push = QPushButton(button.text)
            push.setAutoDefault(False)
            if button.is_default:
                push.setDefault(True)
            if button.tooltip:
                push.setToolTip(button.tooltip)
            push.clicked.connect(lambda _checked=False, b=button: self._on_button_clicked(b))
            self._buttons[button.name] = push
            row.addWidget(push)
        return container

    def _apply_window_options(self):
        options = self._spec.window
        flags = self.windowFlags() & ~Qt.WindowContextHelpButtonHint

        if options.style == WindowStyle.TOOL or options.hide_taskbar_icon:
            flags = (flags & ~Qt.WindowType_Mask) | Qt.Tool
        if options.style == WindowStyle.NONE:
            flags |= Qt.FramelessWindowHint
        if options.topmost:
            flags |= Qt.WindowStaysOnTopHint
        if options.resize_mode == ResizeMode.CAN_MINIMIZE:
            flags |= Qt.WindowMinimizeButtonHint
        elif options.resize_mode == ResizeMode.CAN_RESIZE:
            flags |= Qt.WindowMinMaxButtonsHint
        self.setWindowFlags(flags)

        if options.resize_mode == ResizeMode.NO_RESIZE:
            self.layout().setSizeConstraint(QLayout.SetFixedSize)

        self.setMinimumWidth(max(options.min_width or 0, self._defaults.min_width))
        if options.min_height:
            self.setMinimumHeight(options.min_height)
        if options.max_width:
            self.setMaximumWidth(options.max_width)
        if options.max_height:
            self.setMaximumHeight(options.max_height)

        styles = []
        if self._spec.background_color:
            styles.append(f"QDialog {{ background-color: {self._spec.background_color}; }}")
        if self._spec.accent_color:
            styles.append(f"QPushButton:default {{ border: 2px solid {self._spec.accent_color}; }}")
            styles.append(f"QTabBar::tab:selected {{ color: {self._spec.accent_color}; }}")
        if self._spec.font.color:
            styles.append(f"QLabel#message, QLabel#comment {{ color: {self._spec.font.color}; }}")
        if styles:
            self.setStyleSheet("\n".join(styles))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _set_state(self, state: DialogState):
        logger.debug(f"Dialog '{self._spec.title}': {self._state.value} -> {state.value}")
        self._state = state

    def showEvent(self, event):
        super().showEvent(event)
        if not self._first_show:
            return
        self._first_show = False

        if self._owner is not None:
            self._owner_opacity = self._owner.windowOpacity()
            self._owner.setWindowOpacity(self._defaults.owner_dim_opacity)

        if self._spec.prep_hook is not None:
            try:
                self._spec.prep_hook(self._context())
            except Exception as e:
                logger.error(f"Preparation hook failed: {e}", exc_info=True)
                self._show_error("Error", f"Dialog preparation failed:\n{e}")
            if self._closing():
                return

        for grid in self._grids:
            grid.initialize()

        self._focus_initial_prompt()

        if self._spec.timeout:
            self._timer = QTimer(self)
            self._timer.setInterval(1000)
            self._timer.timeout.connect(self._on_tick)
            self._timer.start()

        self._set_state(DialogState.SHOWN)

    def _focus_initial_prompt(self):
        editable = [f for f in self._fields.values() if not f.prompt.read_only]
        if not editable:
            return
        target = next((f for f in editable if f.isEmpty()), editable[0])
        # Collapsed sections stay collapsed on first show
        target.focusInput()

    def _focus_field(self, field: FieldWidget):
        for reveal in self._revealers.get(field.getFieldId(), []):
            reveal()
        field.focusInput()

    def _on_tick(self):
        self._remaining -= 1
        if self._countdown_label is not None:
            self._countdown_label.setText(self._countdown_text(max(self._remaining, 0)))
        if self._remaining <= 0:
            logger.info(f"Dialog '{self._spec.title}' timed out")
            self._result[TIMED_OUT_KEY] = True
            self._set_state(DialogState.CLOSING)
            self.done(QDialog.Rejected)

    @staticmethod
    def _countdown_text(seconds: int) -> str:
        return f"Closing in {seconds} seconds..."

    def _on_button_clicked(self, button: Button):
        if self._closing():
            return

        if button.reserved:
            self._run_reserved(button)
            return

        if button.on_click is not None:
            try:
                button.on_click(self._context(button))
            except Exception as e:
                logger.error(f"Handler for button '{button.name}' failed: {e}", exc_info=True)
                if not self._closing():
                    self._show_error("Error", f"'{button.text}' failed:\n{e}")
            return

        if button.is_cancel:
            self._result[button.name] = True
            self._set_state(DialogState.CLOSING)
            self.done(QDialog.Rejected)
            return

        self._set_state(DialogState.VALIDATING)
        outcome = validate(self._spec.prompts, self._result)
        if not outcome.passed:
            self._message_box(self, "Validation", outcome.message)
            if self._closing():
                # Closed by the timeout while the message was open
                return
            field = self._fields.get(outcome.prompt.name)
            if field is not None:
                self._focus_field(field)
            self._set_state(DialogState.SHOWN)
            return

        self._result[button.name] = True
        self._set_state(DialogState.CLOSING)
        self.done(QDialog.Accepted)

    def _run_reserved(self, button: Button):
        if button.name == COPY_BUTTON:
            text = "\n".join(self._spec.message)
            try:
                copied = self._services.clipboard.set_text(text)
            except Exception as e:
                logger.error(f"Clipboard write failed: {e}", exc_info=True)
                copied = False
            if not copied:
                self._show_error("Copy Failed", "The message could not be copied to the clipboard.")
            return

        grid = self.activeGrid()
        if grid is None:
            return
        if button.name == EXPLORE_BUTTON:
            grid.explore()
        elif button.name == SAVE_BUTTON:
            grid.exportCsv()

    def _context(self, button: Optional[Button] = None) -> DialogContext:
        return DialogContext(
            result=self._result,
            widgets=self.widgetMap(),
            close=self._request_close,
            button=button,
        )

    def _request_close(self):
        """Close without validation (custom handler request)."""
        if self._closing():
            return
        self._set_state(DialogState.CLOSING)
        self.done(QDialog.Accepted)

    def _set_active_grid(self, grid: GridView):
        self._active_grid = grid

    def _show_error(self, title: str, message: str):
        self._message_box(self, title, message)

    def _closing(self) -> bool:
        return self._state in (DialogState.CLOSING, DialogState.CLOSED)

    def _message_dialog(self, parent: QWidget, title: str, text: str):
        """Secondary warning dialog, built by this engine and owned by ``parent``."""
        spec = DialogSpec(
            title=title,
            icon=IconKind.WARNING,
            message=text.splitlines() or [text],
            buttons=["OK"],
        )
        DialogBuilder.build(spec, services=self._services, config=self._defaults, parent=parent).run()

    def reject(self):
        """ESC and the window close button act like the cancel button."""
        if not self._closing():
            cancel = self._spec.cancel()
            if cancel is not None and not cancel.has_handler:
                self._result[cancel.name] = True
            self._set_state(DialogState.CLOSING)
        super().reject()

    def done(self, code: int):
        if self._state != DialogState.CLOSED:
            if self._timer is not None:
                self._timer.stop()
            if self._owner is not None and self._owner_opacity is not None:
                self._owner.setWindowOpacity(self._owner_opacity)
                self._owner.activateWindow()
            self._result.freeze()
            self._set_state(DialogState.CLOSED)
        super().done(code)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> ResultMap:
        """Show the dialog modally and return the frozen Result Map."""
        self.exec_()
        if not self._result.is_frozen:
            self._result.freeze()
        return self._result

    def resultMap(self) -> ResultMap:
        return self._result

    def state(self) -> DialogState:
        return self._state

    def spec(self) -> DialogSpec:
        return self._spec

    def fieldWidget(self, name: str) -> Optional[FieldWidget]:
        return self._fields.get(name)

    def button(self, name: str) -> Optional[QPushButton]:
        return self._buttons.get(name)

    def grids(self) -> list[GridView]:
        return list(self._grids)

    def activeGrid(self) -> Optional[GridView]:
        """The grid last interacted with, else the first one."""
        if self._active_grid is not None:
            return self._active_grid
        return self._grids[0] if self._grids else None

    def countdownLabel(self) -> Optional[QLabel]:
        return self._countdown_label

    def widgetMap(self) -> dict[str, Any]:
        """Prompt and button names (and grid<k>) mapped to live widgets."""
        widgets: dict[str, Any] = {
            name: field.inputWidget() for name, field in self._fields.items()
        }
        widgets.update(self._buttons)
        for grid in self._grids:
            widgets[f"grid{grid.index}"] = grid
        return widgets


def _ensure_application() -> QApplication:
    """Return the running QApplication, creating one when needed."""
    global _application
    app = QApplication.instance()
    if app is not None:
        return app
    try:
        _application = QApplication(sys.argv[:1])
    except Exception as e:
        raise DialogConstructionError(f"Could not create a QApplication: {e}") from e
    return _application


class DialogBuilder:
    """
    Builder class for creating prompt dialogs from specifications.
    """

    @staticmethod
    def build(
        spec: Union[DialogSpec, Mapping[str, Any]],
        services: Optional[DialogServices] = None,
        config: Optional[DefaultsConfig] = None,
        message_box: Optional[MessageBox] = None,
        parent: Optional[QWidget] = None,
    ) -> PromptDialog:
        """
        Build a dialog without showing it.

        Args:
            spec: DialogSpec or plain mapping in the YAML layout
            services: Collaborators; Qt-backed when omitted
            config: Styling defaults; read (never written) through ConfigService when omitted
            message_box: Callable used for validation and error modals
            parent: Owner window

        Returns:
            PromptDialog in the CONSTRUCTING state

        Raises:
            SpecParseError: If the specification is malformed
            DialogConstructionError: If the toolkit fails to build the dialog
        """
        _ensure_application()
        if isinstance(spec, Mapping):
            spec = DialogSpecParser.parse(dict(spec))
        if config is None:
            config = ConfigService().read()
        normalized = DialogSpecParser.normalize(spec, config)

        try:
            return PromptDialog(
                normalized,
                services=services,
                defaults=config,
                message_box=message_box,
                parent=parent,
            )
        except Exception as e:
            raise DialogConstructionError(f"Failed to build dialog '{normalized.title}': {e}") from e


def show_dialog(
    spec: Union[DialogSpec, Mapping[str, Any]],
    services: Optional[DialogServices] = None,
    config: Optional[DefaultsConfig] = None,
    message_box: Optional[MessageBox] = None,
    parent: Optional[QWidget] = None,
) -> ResultMap:
    """
    Show one modal dialog and return its frozen Result Map.

    Args:
        spec: DialogSpec or plain mapping in the YAML layout
        services: Collaborators; Qt-backed when omitted
        config: Styling defaults; read (never written) through ConfigService when omitted
        message_box: Callable used for validation and error modals
        parent: Owner window, dimmed while the dialog is shown

    Returns:
        ResultMap with one entry per prompt and per plain button, plus
        TimedOut and grid_select<k> where applicable
    """
    dialog = DialogBuilder.build(spec, services, config, message_box, parent)
    return dialog.run()


def show_message(
    message: Union[str, list[str]],
    title: str = "",
    icon: IconKind = IconKind.INFORMATION,
    services: Optional[DialogServices] = None,
    parent: Optional[QWidget] = None,
) -> ResultMap:
    """Show a plain message with a single OK button."""
    lines = message.splitlines() if isinstance(message, str) else list(message)
    spec = DialogSpec(title=title, icon=icon, message=lines, buttons=["OK"])
    return show_dialog(spec, services=services, parent=parent)
