# Script Version: 1.0.0 | Phase 3: Interaction Flow
# Description: Factory functions for creating specific UI tabs and panels.

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QTextEdit, QTableWidget, QHeaderView,
    QListWidget, QHBoxLayout, QPushButton, QLabel
)


class TabFactory:
    @staticmethod
    def create_journal_tab():
        tab = QWidget()
        layout = QVBoxLayout(tab)
        journal = QTextEdit()
        journal.setReadOnly(True)
        journal.setStyleSheet("background-color: #1e1e1e; color: #d4d4d4; font-family: monospace;")
        layout.addWidget(journal)
        return tab, journal

    @staticmethod
    def create_details_tab():
        tab = QWidget()
        layout = QVBoxLayout(tab)
        details = QTextEdit()
        details.setReadOnly(True)
        layout.addWidget(details)
        return tab, details

    @staticmethod
    def create_assumptions_tab():
        tab = QWidget()
        layout = QVBoxLayout(tab)
        layout.addWidget(QLabel("Hidden assumptions discovered for the selected node:"))
        assumptions = QListWidget()
        assumptions.setWordWrap(True)
        layout.addWidget(assumptions)
        return tab, assumptions

    @staticmethod
    def create_sources_tab(double_click_handler):
        tab = QWidget()
        layout = QVBoxLayout(tab)
        table = QTableWidget()
        table.setColumnCount(2)
        table.setHorizontalHeaderLabels(["Title", "URL"])
        table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        table.cellDoubleClicked.connect(double_click_handler)
        layout.addWidget(table)
        return tab, table

    @staticmethod
    def create_review_panel(confirm_handler, clarify_handler):
        """Query analysis review: summary text plus Confirm / Clarify buttons (hidden until REVIEW)."""
        panel = QWidget()
        layout = QVBoxLayout(panel)
        summary = QTextEdit()
        summary.setReadOnly(True)
        summary.setMaximumHeight(140)
        layout.addWidget(summary)

        toolbar = QHBoxLayout()
        clarify_btn = QPushButton("Clarify Meaning...")
        clarify_btn.clicked.connect(clarify_handler)
        confirm_btn = QPushButton("Decompose")
        confirm_btn.setStyleSheet("background-color: #2d5a27; color: white; font-weight: bold;")
        confirm_btn.clicked.connect(confirm_handler)
        toolbar.addStretch()
        toolbar.addWidget(clarify_btn)
        toolbar.addWidget(confirm_btn)
        layout.addLayout(toolbar)

        panel.hide()
        return panel, summary, confirm_btn, clarify_btn
