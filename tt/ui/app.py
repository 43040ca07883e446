import sys
from datetime import timedelta
from PySide6.QtCore import Qt, QTimer, QUrl
from PySide6.QtGui import QDesktopServices, QFont
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core import config
from tt.core.errors import InvalidName
from tt.core.persistence import PersistenceStore
from tt.core.scheduler import QtScheduler
from tt.core.tracker import TimerTracker
from tt.util import format_elapsed, format_started, ticket_url

_NO_SELECTION = "Pick or create a ticket"


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of TicketTimer. It only renders what the tracker holds and forwards clicks back into it.
class MainWindow(QMainWindow):

    def __init__(self, tracker, settings):
        super().__init__()
        self.setWindowTitle("Ticket Timer")
        self.tracker = tracker
        self.settings = settings
        self.show_tenths = settings["show_tenths"]

        if settings["always_on_top"]:
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        geo = settings["window"]
        self.resize(geo["width"], geo["height"])
        if geo["x"] is not None and geo["y"] is not None:
            self.move(geo["x"], geo["y"])

        # -- Build UI skeleton --
        central = QWidget()
        self.setCentralWidget(central)
        lay = QVBoxLayout(central)

        self._main_name = QLabel(_NO_SELECTION)
        self._main_name.setAlignment(Qt.AlignCenter)
        self._main_time = QLabel(format_elapsed(timedelta(0), self.show_tenths))
        self._main_time.setAlignment(Qt.AlignCenter)
        self._main_time.setFont(QFont(self._main_time.font().family(), 28, QFont.Bold))
        self._main_started = QLabel("")
        self._main_started.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._main_name)
        lay.addWidget(self._main_time)
        lay.addWidget(self._main_started)

        buttons = QHBoxLayout()
        self._toggle_btn = QPushButton("Start")
        self._toggle_btn.clicked.connect(self._on_toggle)
        self._reset_btn = QPushButton("Reset")
        self._reset_btn.clicked.connect(self._on_reset)
        self._remove_btn = QPushButton("Remove")
        self._remove_btn.clicked.connect(self._on_remove)
        self._ticket_btn = QPushButton("Open Ticket")
        self._ticket_btn.clicked.connect(self._on_open_ticket)
        for btn in (self._toggle_btn, self._reset_btn, self._remove_btn, self._ticket_btn):
            buttons.addWidget(btn)
        lay.addLayout(buttons)

        search_row = QHBoxLayout()
        self._search = QLineEdit()
        self._search.setPlaceholderText("Search or create ticket...")
        self._search.textChanged.connect(self._on_search_changed)
        self._search.returnPressed.connect(self._on_submit)
        self._action_btn = QPushButton("+")
        self._action_btn.clicked.connect(self._on_action)
        search_row.addWidget(self._search)
        search_row.addWidget(self._action_btn)
        lay.addLayout(search_row)

        self._list = QListWidget()
        self._list.itemClicked.connect(self._on_item_clicked)
        lay.addWidget(self._list)

        self._clear_btn = QPushButton("Clear All")
        self._clear_btn.clicked.connect(self._on_clear_all)
        lay.addWidget(self._clear_btn)

        # -- Wire up the core --
        tracker.ticked.connect(self._tick)
        tracker.selection_changed.connect(self._on_selection_changed)
        self._scheduler = QtScheduler(self)
        tracker.start_schedules(
            self._scheduler,
            tick_interval_ms=settings["tick_interval_ms"],
            autosave_seconds=settings["autosave_seconds"],
        )

        self._rebuild_list()
        self._update_main_display()

    # ------------------------------------------------------------------ #
    #  List building                                                       #
    # ------------------------------------------------------------------ #

    def _rebuild_list(self):
        """Recreate the list rows for whatever the search box currently matches."""
        self._list.clear()
        selected = self.tracker.selected
        for timer in self.tracker.filter_timers(self._search.text()):
            item = QListWidgetItem()
            item.setData(Qt.UserRole, timer.id)
            self._list.addItem(item)
            self._update_item(item)
            if selected is not None and timer.id == selected.id:
                item.setSelected(True)

    def _update_item(self, item):
        timer = self.tracker.get(item.data(Qt.UserRole))
        if timer is None:
            return
        elapsed = timer.effective_elapsed(self.tracker.clock())
        item.setText(f"{timer.name}    {format_elapsed(elapsed, self.show_tenths)}")
        f = item.font()
        f.setBold(timer.running)
        item.setFont(f)

    def _update_main_display(self):
        timer = self.tracker.selected
        enabled = timer is not None
        for btn in (self._toggle_btn, self._reset_btn, self._remove_btn):
            btn.setEnabled(enabled)
        self._ticket_btn.setEnabled(enabled and bool(self.settings["ticket_url_template"]))
        self._clear_btn.setEnabled(len(self.tracker.list_timers()) > 0)
        if timer is None:
            self._main_name.setText(_NO_SELECTION)
            self._main_time.setText(format_elapsed(timedelta(0), self.show_tenths))
            self._main_started.setText("")
            self._toggle_btn.setText("Start")
            return
        self._main_name.setText(timer.name)
        self._main_time.setText(format_elapsed(timer.effective_elapsed(self.tracker.clock()), self.show_tenths))
        last_run_start = timer.state()[3]
        prefix = "" if last_run_start is None else "Last started "
        self._main_started.setText(prefix + format_started(last_run_start))
        self._toggle_btn.setText("Pause" if timer.running else "Start")

    # ------------------------------------------------------------------ #
    #  Core callbacks                                                      #
    # ------------------------------------------------------------------ #

    def _tick(self):
        for i in range(self._list.count()):
            self._update_item(self._list.item(i))
        self._update_main_display()

    def _on_selection_changed(self, previous, current):
        for i in range(self._list.count()):
            item = self._list.item(i)
            item.setSelected(current is not None and item.data(Qt.UserRole) == current.id)
        self._update_main_display()

    # ------------------------------------------------------------------ #
    #  Search box                                                          #
    # ------------------------------------------------------------------ #

    def _on_search_changed(self, text):
        # A "×" means the text already names a timer, pressing it just clears the box
        self._action_btn.setText("×" if text.strip() and self.tracker.has_exact_match(text) else "+")
        self._rebuild_list()

    def _on_action(self):
        text = self._search.text().strip()
        if not text:
            return
        if self._action_btn.text() == "+":
            self._on_submit()
        else:
            self._search.clear()

    def _on_submit(self):
        text = self._search.text()
        try:
            self.tracker.create_or_select(text)
        except InvalidName:
            return
        self._search.clear()
        self._rebuild_list()

    # ------------------------------------------------------------------ #
    #  Button handlers                                                     #
    # ------------------------------------------------------------------ #

    def _on_item_clicked(self, item):
        self.tracker.select(item.data(Qt.UserRole))

    def _on_toggle(self):
        self.tracker.toggle_selected()
        self._tick()

    def _on_reset(self):
        timer = self.tracker.selected
        if timer is None:
            return
        if self.settings["confirm_reset"] and QMessageBox.question(
                self, "Confirm Reset",
                f"Reset timer '{timer.name}' to zero?"
        ) != QMessageBox.Yes:
            return
        self.tracker.reset_selected()
        self._tick()

    def _on_remove(self):
        timer = self.tracker.selected
        if timer is None:
            return
        if self.settings["confirm_delete"] and QMessageBox.question(
                self, "Confirm Delete",
                f"Delete '{timer.name}'?"
        ) != QMessageBox.Yes:
            return
        self.tracker.remove(timer.id)
        self._rebuild_list()
        self._update_main_display()

    def _on_clear_all(self):
        count = len(self.tracker.list_timers())
        if count == 0:
            return
        if self.settings["confirm_delete"] and QMessageBox.question(
                self, "Confirm Clear All",
                f"Delete all {count} timer(s)? This can't be undone."
        ) != QMessageBox.Yes:
            return
        self.tracker.clear_all()
        self._search.clear()
        self._rebuild_list()
        self._update_main_display()

    def _on_open_ticket(self):
        timer = self.tracker.selected
        if timer is None:
            return
        url = ticket_url(self.settings["ticket_url_template"], timer.name)
        if url is None:
            return
        log.info(f"Opening ticket link {url}")
        if not QDesktopServices.openUrl(QUrl(url)):
            QMessageBox.warning(self, "Open Ticket", f"Could not open:\n{url}")

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    def closeEvent(self, event):
        geo = self.geometry()
        self.settings["window"] = {"width": geo.width(), "height": geo.height(), "x": geo.x(), "y": geo.y()}
        try:
            config.save_settings(self.settings)
        except OSError as e:
            log.warning("Failed to save settings on exit", exc_info=True)
            QMessageBox.warning(self, "Save Error", f"Failed to save settings:\n{e}")
        if not self.tracker.shutdown():
            QMessageBox.warning(self, "Save Error", "Failed to save timers, see the log for details.")
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    settings = config.load_settings()
    tracker = TimerTracker(PersistenceStore(PATHS.timers_file))
    tracker.load()
    window = MainWindow(tracker, settings)
    window.show()
    QTimer.singleShot(0, window._search.setFocus)
    sys.exit(app.exec())
