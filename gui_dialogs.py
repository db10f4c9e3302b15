# Script Version: 1.0.0 | Phase 3: Interaction Flow
# Description: AmbiguityDialog: choose one reading of an ambiguous query, or type a sharper one.

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QLabel, QListWidget, QLineEdit, QDialogButtonBox
)


class AmbiguityDialog(QDialog):
    """
    Shows the interpretations offered by query analysis. The chosen (or typed)
    reading ends up in `selected_option` and is resubmitted as a new query.
    """
    def __init__(self, query, options, font_size=14, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Which one did you mean?")
        self.resize(600, 420)
        self.setStyleSheet(f"font-size: {font_size}pt;")
        self.selected_option = None

        layout = QVBoxLayout(self)
        prompt = QLabel(f"\"{query}\" has more than one reading. Pick the one to break down:")
        prompt.setWordWrap(True)
        layout.addWidget(prompt)

        self.options_list = QListWidget()
        self.options_list.setWordWrap(True)
        self.options_list.addItems(list(options))
        self.options_list.itemDoubleClicked.connect(lambda _item: self.accept())
        self.options_list.currentRowChanged.connect(lambda _row: self.custom_input.clear())
        layout.addWidget(self.options_list)

        self.custom_input = QLineEdit()
        self.custom_input.setPlaceholderText("...or describe it yourself")
        self.custom_input.textEdited.connect(lambda _text: self.options_list.clearSelection())
        layout.addWidget(self.custom_input)

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

    def accept(self):
        custom = self.custom_input.text().strip()
        item = self.options_list.currentItem()
        if custom:
            self.selected_option = custom
        elif item is not None and item.isSelected():
            self.selected_option = item.text()
        else:
            return
        super().accept()
