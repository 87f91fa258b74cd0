from __future__ import annotations

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
)


class DeleteConfirmDialog(QDialog):
    """Final confirmation before photos are removed from the library."""

    def __init__(self, pending_count: int, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Delete Permanently")

        root = QVBoxLayout(self)

        title = QLabel(f"Permanently delete {pending_count} photos from the library?")
        root.addWidget(title)

        warn = QLabel("Deleted files are moved to the system trash.")
        warn.setStyleSheet("color: #b00020; font-weight: bold;")
        root.addWidget(warn)

        self._confirm_box = QCheckBox("I understand these photos will leave the library")
        root.addWidget(self._confirm_box)

        btns = QHBoxLayout()
        self.btn_ok = QPushButton("Delete")
        self.btn_cancel = QPushButton("Cancel")
        btns.addWidget(self.btn_ok)
        btns.addStretch(1)
        btns.addWidget(self.btn_cancel)
        root.addLayout(btns)

        self.btn_ok.clicked.connect(self._on_accept)
        self.btn_cancel.clicked.connect(self.reject)

    def _on_accept(self) -> None:
        if not self._confirm_box.isChecked():
            return
        self.accept()
