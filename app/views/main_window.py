"""Main window: review feed, month browser, bin and purchase settings.

The window only reads snapshots from `MainVM` and forwards user intent to
it; all state lives in the collection store behind the view-model.
"""

from __future__ import annotations

from PySide6.QtCore import QSize, Qt
from PySide6.QtGui import QAction, QIcon, QPixmap
from PySide6.QtWidgets import (
    QAbstractItemView,
    QDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTabWidget,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)
from loguru import logger

from app.viewmodels.main_vm import MainVM
from app.viewmodels.photo_vm import PhotoVM
from app.views.dialogs.delete_confirm_dialog import DeleteConfirmDialog
from infrastructure.logging import open_latest_log

PREVIEW_SIDE = 480
ICON_SIDE = 128


def _pixmap(vm: PhotoVM, side: int) -> QPixmap:
    pix = QPixmap()
    if not pix.loadFromData(vm.image_bytes):
        logger.debug("Could not decode image for {}", vm.key)
        return pix
    return pix.scaled(side, side, Qt.KeepAspectRatio, Qt.SmoothTransformation)


class MainWindow(QMainWindow):
    """Tabbed main window bound to a `MainVM`."""

    def __init__(self, vm: MainVM) -> None:
        super().__init__()
        self._vm = vm
        self._review_index = 0

        self._setup_ui()
        self._connect_signals()
        self.setWindowTitle("Photo Triage")
        self.resize(960, 720)
        self.statusBar().showMessage("Ready", 3000)

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------
    def _setup_ui(self) -> None:
        toolbar = self.addToolBar("Library")
        self.act_refresh = QAction("Refresh", self)
        self.act_open_log = QAction("Open Log", self)
        toolbar.addAction(self.act_refresh)
        toolbar.addAction(self.act_open_log)

        tabs = QTabWidget()
        tabs.addTab(self._build_review_tab(), "Review")
        tabs.addTab(self._build_discover_tab(), "Discover")
        tabs.addTab(self._build_bin_tab(), "Bin")
        tabs.addTab(self._build_settings_tab(), "Settings")
        self.setCentralWidget(tabs)

    def _build_review_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.review_image = QLabel("No photos to review")
        self.review_image.setAlignment(Qt.AlignCenter)
        self.review_image.setMinimumSize(PREVIEW_SIDE, PREVIEW_SIDE)
        self.review_caption = QLabel("")
        self.review_caption.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.review_image, 1)
        layout.addWidget(self.review_caption)

        buttons = QHBoxLayout()
        self.btn_bin = QPushButton("Move to Bin")
        self.btn_keep = QPushButton("Keep")
        buttons.addWidget(self.btn_bin)
        buttons.addStretch(1)
        buttons.addWidget(self.btn_keep)
        layout.addLayout(buttons)
        return page

    def _build_discover_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.featured_label = QLabel("")
        self.featured_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(QLabel("On This Date"))
        layout.addWidget(self.featured_label)
        self.month_tree = QTreeWidget()
        self.month_tree.setHeaderHidden(True)
        self.month_tree.setIconSize(QSize(ICON_SIDE // 2, ICON_SIDE // 2))
        layout.addWidget(self.month_tree, 1)
        self.limit_label = QLabel("")
        layout.addWidget(self.limit_label)
        return page

    def _build_bin_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.bin_list = QListWidget()
        self.bin_list.setViewMode(QListWidget.IconMode)
        self.bin_list.setIconSize(QSize(ICON_SIDE, ICON_SIDE))
        self.bin_list.setSelectionMode(QAbstractItemView.ExtendedSelection)
        layout.addWidget(self.bin_list, 1)
        self.bin_message = QLabel("")
        layout.addWidget(self.bin_message)

        buttons = QHBoxLayout()
        self.btn_restore = QPushButton("Restore Selected")
        self.btn_remove = QPushButton("Remove from Bin")
        self.btn_delete = QPushButton("Delete Permanently")
        buttons.addWidget(self.btn_restore)
        buttons.addWidget(self.btn_remove)
        buttons.addStretch(1)
        buttons.addWidget(self.btn_delete)
        layout.addLayout(buttons)
        return page

    def _build_settings_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.status_label = QLabel("")
        self.counts_label = QLabel("")
        self.purchase_error = QLabel("")
        self.purchase_error.setStyleSheet("color: #b00020;")
        layout.addWidget(self.status_label)
        layout.addWidget(self.counts_label)

        buttons = QHBoxLayout()
        self.btn_upgrade = QPushButton("Upgrade")
        self.btn_restore_purchase = QPushButton("Restore Purchases")
        self.btn_reset_purchase = QPushButton("Reset Purchase")
        buttons.addWidget(self.btn_upgrade)
        buttons.addWidget(self.btn_restore_purchase)
        buttons.addWidget(self.btn_reset_purchase)
        layout.addLayout(buttons)
        layout.addWidget(self.purchase_error)
        layout.addStretch(1)
        return page

    def _connect_signals(self) -> None:
        self.act_refresh.triggered.connect(lambda: self._vm.refresh())
        self.act_open_log.triggered.connect(self._on_open_log)
        self.btn_keep.clicked.connect(self._on_keep)
        self.btn_bin.clicked.connect(self._on_stage)
        self.btn_restore.clicked.connect(lambda: self._vm.restore(self._selected_bin_keys()))
        self.btn_remove.clicked.connect(lambda: self._vm.remove_from_bin(self._selected_bin_keys()))
        self.btn_delete.clicked.connect(lambda: self._vm.confirm_deletion())
        self.btn_upgrade.clicked.connect(lambda: self._vm.upgrade())
        self.btn_restore_purchase.clicked.connect(lambda: self._vm.restore_purchases())
        self.btn_reset_purchase.clicked.connect(lambda: self._vm.reset_purchases())

        self._vm.activeChanged.connect(self._on_active_changed)
        self._vm.binChanged.connect(self._refresh_bin)
        self._vm.busyChanged.connect(self._refresh_busy)
        self._vm.messageChanged.connect(self._on_message)
        self._vm.confirmationRequired.connect(self._on_confirmation_required)
        self._vm.quotaExceeded.connect(self._on_quota_exceeded)
        self._vm.entitlementChanged.connect(lambda _v: self._on_active_changed())
        self._vm.authorizationChanged.connect(self._refresh_settings)
        self._vm.purchaseFinished.connect(self._on_purchase_finished)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _on_active_changed(self) -> None:
        self._refresh_review()
        self._refresh_discover()
        self._refresh_settings()

    def _refresh_review(self) -> None:
        photos = self._vm.review_photos()
        if self._review_index >= len(photos):
            self._review_index = 0
        if not photos:
            self.review_image.setPixmap(QPixmap())
            if not self._vm.store.is_entitled:
                self.review_image.setText("Upgrade to Premium to review your photos")
            else:
                self.review_image.setText("No photos to review")
            self.review_caption.setText("")
        else:
            current = photos[self._review_index]
            self.review_image.setPixmap(_pixmap(current, PREVIEW_SIDE))
            self.review_caption.setText(
                f"{current.display_date}  ({self._review_index + 1}/{len(photos)})"
            )
        self.btn_keep.setEnabled(bool(photos))
        self.btn_bin.setEnabled(bool(photos) and not self._vm.store.is_refreshing)

    def _refresh_discover(self) -> None:
        featured = self._vm.featured_photo()
        if featured is None:
            self.featured_label.setPixmap(QPixmap())
            self.featured_label.setText("No photos")
        else:
            self.featured_label.setPixmap(_pixmap(featured, ICON_SIDE * 2))

        self.month_tree.clear()
        for label, items in self._vm.photos_by_month():
            parent = QTreeWidgetItem([f"{label} ({len(items)})"])
            for photo in items:
                child = QTreeWidgetItem([photo.display_date])
                child.setIcon(0, QIcon(_pixmap(photo, ICON_SIDE // 2)))
                parent.addChild(child)
            self.month_tree.addTopLevelItem(parent)

        store = self._vm.store
        if store.is_over_quota:
            self.limit_label.setText(
                f"Showing {len(store.available_photos())} of {store.active_count} photos."
            )
        else:
            self.limit_label.setText("")

    def _refresh_bin(self) -> None:
        self.bin_list.clear()
        for photo in self._vm.bin_photos():
            item = QListWidgetItem(QIcon(_pixmap(photo, ICON_SIDE)), photo.display_date)
            item.setData(Qt.UserRole, photo.key)
            self.bin_list.addItem(item)
        self.btn_delete.setEnabled(self.bin_list.count() > 0 and not self._vm.is_busy)
        self._refresh_settings()

    def _refresh_busy(self) -> None:
        busy = self._vm.is_busy
        self.act_refresh.setEnabled(not self._vm.store.is_refreshing)
        self.btn_delete.setEnabled(self.bin_list.count() > 0 and not busy)
        for btn in (self.btn_upgrade, self.btn_restore_purchase, self.btn_reset_purchase):
            btn.setEnabled(not busy)
        if self._vm.store.is_refreshing:
            self.statusBar().showMessage("Loading photos...")
        else:
            self.statusBar().clearMessage()

    def _refresh_settings(self, *_args) -> None:
        store = self._vm.store
        plan = "Premium" if store.is_entitled else "Free"
        self.status_label.setText(
            f"Plan: {plan}    Library access: {store.authorization_status.value}"
        )
        self.counts_label.setText(f"Photos: {store.active_count}    In bin: {store.bin_count}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _selected_bin_keys(self) -> list[str]:
        return [item.data(Qt.UserRole) for item in self.bin_list.selectedItems()]

    def _on_keep(self) -> None:
        self._review_index += 1
        self._refresh_review()

    def _on_stage(self) -> None:
        photos = self._vm.review_photos()
        if 0 <= self._review_index < len(photos):
            self._vm.stage(photos[self._review_index].key)

    def _on_message(self, message: str) -> None:
        self.bin_message.setText(message)
        if message:
            self.statusBar().showMessage(message, 5000)

    def _on_confirmation_required(self, pending_count: int) -> None:
        dlg = DeleteConfirmDialog(pending_count, parent=self)
        if dlg.exec() == QDialog.Accepted:
            self._vm.commit_deletion()
        else:
            self._vm.cancel_deletion()

    def _on_quota_exceeded(self) -> None:
        self._vm.dismiss_upgrade_prompt()
        answer = QMessageBox.question(
            self,
            "Upgrade",
            "Your library is larger than the free plan allows. Upgrade to review every photo?",
        )
        if answer == QMessageBox.Yes:
            self._vm.upgrade()

    def _on_purchase_finished(self, ok: bool, error: str) -> None:
        self.purchase_error.setText("" if ok else error)
        self._refresh_settings()

    def _on_open_log(self) -> None:
        if not open_latest_log():
            self.statusBar().showMessage("No log file to open", 3000)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._vm.shutdown()
        super().closeEvent(event)
