# Script Version: 1.0.0 | Phase 3: Interaction Flow
# Description: Main GUI for Bedrock, the first-principles decomposition explorer.
# Implementation: All session logic lives in ApplicationController on the worker's event loop; this window only renders snapshots.

import sys
import signal
import webbrowser
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QVBoxLayout, QHBoxLayout, QWidget, QLineEdit,
    QPushButton, QSplitter, QMessageBox, QTabWidget, QFileDialog, QLabel, QTableWidgetItem
)
from PyQt6.QtGui import QAction
from PyQt6.QtCore import Qt, pyqtSlot
from dotenv import load_dotenv

import tree_engine
from agents import build_capability
from export_manager import ExportManager
from gui_dialogs import AmbiguityDialog
from gui_tabs import TabFactory
from gui_widgets import DecompositionTreeWidget
from orchestrator import RequestOrchestrator
from settings_manager import SettingsManager, ModelManager, PromptManager
from settings_ui import SettingsDialog
from utils import setup_project_files, LogStream, crash_handler
from worker import ControllerWorker

sys.excepthook = crash_handler


class BedrockUI(QMainWindow):
    def __init__(self, log_signal):
        super().__init__()
        self.setWindowTitle("Bedrock - First-Principles Reasoning Engine (v1.0.0)")
        self.resize(1300, 850)

        self.settings_manager = SettingsManager()
        self.model_manager = ModelManager()
        self.prompt_manager = PromptManager()

        self.root = None
        self.analysis = {}
        self.selected_id = None

        self.log_signal = log_signal
        self._init_ui()
        self.log_signal.connect(self._append_log)
        self._start_worker()

    def _start_worker(self):
        capability = build_capability(self.settings_manager, self.prompt_manager)
        orchestrator = RequestOrchestrator.from_settings(self.settings_manager, capability)
        self.worker = ControllerWorker(orchestrator)
        self.worker.phase_changed.connect(self._on_phase)
        self.worker.tree_changed.connect(self._on_tree)
        self.worker.analysis_ready.connect(self._on_analysis)
        self.worker.selection_changed.connect(self._on_selection)
        self.worker.error.connect(self._on_error)
        self.worker.start()
        self.mode_label.setText("ONLINE" if orchestrator.is_online else "OFFLINE (fallback data)")

    def _init_ui(self):
        font_size = self.settings_manager.get("font_size", 14)
        self.setStyleSheet(f"font-size: {font_size}pt;")

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        # Menu
        file_menu = self.menuBar().addMenu("File")
        for label, handler in (("Export JSON...", self._export_json),
                               ("Export Markdown...", self._export_markdown),
                               ("Export DOCX...", self._export_docx),
                               ("Export PDF...", self._export_pdf)):
            action = QAction(label, self)
            action.triggered.connect(handler)
            file_menu.addAction(action)
        settings_action = QAction("Settings...", self)
        settings_action.triggered.connect(self._open_settings)
        self.menuBar().addAction(settings_action)

        # Input Area
        input_row = QHBoxLayout()
        self.topic_input = QLineEdit()
        self.topic_input.setPlaceholderText("Enter a complex topic (e.g., 'Web Security', 'Money', 'Happiness')...")
        self.topic_input.returnPressed.connect(self._submit_query)
        self.start_btn = QPushButton("Analyze")
        self.start_btn.setFixedWidth(150)
        self.start_btn.clicked.connect(self._submit_query)
        input_row.addWidget(self.topic_input)
        input_row.addWidget(self.start_btn)
        layout.addLayout(input_row)

        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: #f87171;")
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label)

        self.review_panel, self.review_summary, self.confirm_btn, self.clarify_btn = \
            TabFactory.create_review_panel(self._confirm, self._clarify)
        layout.addWidget(self.review_panel)

        # Splitter
        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.tree_widget = DecompositionTreeWidget()
        self.tree_widget.expand_callback = lambda node_id: self.worker.submit("expand_node", node_id)
        self.tree_widget.select_callback = lambda node_id: self.worker.submit("select_node", node_id)
        self.tree_widget.elaborate_callback = lambda node_id: self.worker.submit("elaborate", node_id)
        self.tree_widget.question_callback = lambda node_id: self.worker.submit("generate_question", node_id)
        self.tree_widget.mastered_callback = lambda node_id: self.worker.submit("toggle_mastered", node_id)
        splitter.addWidget(self.tree_widget)

        self.tabs = QTabWidget()
        details_tab, self.details_view = TabFactory.create_details_tab()
        assumptions_tab, self.assumptions_list = TabFactory.create_assumptions_tab()
        sources_tab, self.sources_table = TabFactory.create_sources_tab(self._open_source)
        journal_tab, self.journal = TabFactory.create_journal_tab()
        self.tabs.addTab(details_tab, "Details")
        self.tabs.addTab(assumptions_tab, "Assumptions")
        self.tabs.addTab(sources_tab, "Sources")
        self.tabs.addTab(journal_tab, "Journal")
        splitter.addWidget(self.tabs)
        splitter.setSizes([750, 550])
        layout.addWidget(splitter)

        self.mode_label = QLabel("")
        self.phase_label = QLabel("IDLE")
        self.progress_label = QLabel("")
        self.statusBar().addWidget(self.phase_label)
        self.statusBar().addWidget(self.progress_label)
        self.statusBar().addPermanentWidget(self.mode_label)

    # --- Actions ---

    def _submit_query(self):
        topic = self.topic_input.text().strip()
        if not topic: return
        self.error_label.clear()
        self.journal.append(f"\n>>> Analyzing: {topic}\n")
        self.worker.submit("submit_query", topic)

    def _confirm(self):
        self.error_label.clear()
        self.worker.submit("confirm")

    def _clarify(self):
        options = self.analysis.get("ambiguity_options") or []
        if not options: return
        dlg = AmbiguityDialog(self.analysis.get("corrected_query", ""), options,
                              font_size=self.settings_manager.get("font_size", 14), parent=self)
        if dlg.exec() and dlg.selected_option:
            self.worker.submit("choose_interpretation", dlg.selected_option)

    def _open_source(self, row, _column):
        item = self.sources_table.item(row, 1)
        if item:
            webbrowser.open(item.text())

    def _open_settings(self):
        SettingsDialog(self.settings_manager, self.model_manager, self.prompt_manager, self).exec()

    # --- Controller events ---

    @pyqtSlot(str)
    def _on_phase(self, phase):
        self.phase_label.setText(phase)
        busy = phase in ("ANALYZING", "PROCESSING")
        self.start_btn.setEnabled(not busy)
        self.confirm_btn.setEnabled(phase == "REVIEW")
        self.clarify_btn.setEnabled(phase == "REVIEW")
        self.review_panel.setVisible(phase in ("REVIEW", "PROCESSING"))
        self.start_btn.setText("Analyzing..." if phase == "ANALYZING" else "Analyze")
        self.confirm_btn.setText("Decomposing..." if phase == "PROCESSING" else "Decompose")

    @pyqtSlot(object)
    def _on_tree(self, root):
        self.root = root
        self.tree_widget.load_tree(root, self.selected_id)
        stats = tree_engine.progress(root)
        self.progress_label.setText(
            f"Mastered {stats['mastered']}/{stats['total']} | Fundamentals: {stats['fundamentals']}" if root else "")
        self._render_selected()

    @pyqtSlot(dict)
    def _on_analysis(self, analysis):
        self.analysis = analysis
        lines = [
            f"<b>Topic:</b> {analysis.get('corrected_query', '')}",
            f"<b>Intent:</b> {analysis.get('intent', '')} &nbsp; <b>Domain:</b> {analysis.get('domain', '')}"
            f" &nbsp; <b>Source:</b> {analysis.get('data_source', '')}",
            f"<b>Guidance:</b> {analysis.get('enrichment', '')}",
            f"<b>Likely components:</b> {', '.join(analysis.get('predicted_topics') or [])}",
        ]
        self.review_summary.setHtml("<br>".join(lines))
        self.clarify_btn.setVisible(bool(analysis.get("is_ambiguous")))
        if analysis.get("is_ambiguous"):
            self._clarify()

    @pyqtSlot(object)
    def _on_selection(self, node):
        self.selected_id = node.id if node else None
        self._render_selected()

    @pyqtSlot(str)
    def _on_error(self, err):
        self.error_label.setText(err)

    def _render_selected(self):
        node = tree_engine.find_node(self.root, self.selected_id) if self.selected_id else None
        self.assumptions_list.clear()
        self.sources_table.setRowCount(0)
        if node is None:
            self.details_view.clear()
            return

        md = [f"## {node.name}", "", node.description, "",
              f"`Level: {node.level} | Type: {node.type.value}`", ""]
        if node.image_url:
            md += [f"![illustration]({node.image_url})", ""]
        for title, value in (("Core concept", node.core_concept), ("Analogy", node.analogy),
                             ("Why it matters", node.why_important), ("Reasoning", node.reasoning)):
            if value:
                md += [f"**{title}:** {value}", ""]
        if node.is_elaborating:
            md += ["*Elaborating...*", ""]
        elif node.detailed_explanation:
            md += ["### Deep Dive", "", node.detailed_explanation, ""]
        if node.is_generating_question:
            md += ["*Thinking of a question...*", ""]
        elif node.learning_question:
            md += ["### Test Yourself", "", node.learning_question, ""]
        self.details_view.setMarkdown("\n".join(md))

        if node.assumptions:
            self.assumptions_list.addItems(list(node.assumptions))
        else:
            self.assumptions_list.addItem("No specific assumptions yet. Try decomposing this node.")

        self.sources_table.setRowCount(len(node.sources))
        for row, src in enumerate(node.sources):
            self.sources_table.setItem(row, 0, QTableWidgetItem(src["title"]))
            self.sources_table.setItem(row, 1, QTableWidgetItem(src["uri"]))

    # --- Export ---

    def _require_tree(self):
        if self.root is None:
            QMessageBox.information(self, "Export", "Nothing to export yet.")
            return False
        return True

    def _export_json(self):
        if not self._require_tree(): return
        path, _ = QFileDialog.getSaveFileName(self, "Export JSON", "decomposition.json", "JSON (*.json)")
        if path:
            ExportManager.export_json(self.root, path)

    def _export_markdown(self):
        if not self._require_tree(): return
        path, _ = QFileDialog.getSaveFileName(self, "Export Markdown", "decomposition.md", "Markdown (*.md)")
        if path:
            with open(path, "w", encoding="utf-8") as f:
                f.write(ExportManager.export_markdown(self.root))
            print(f"[EXPORT] Markdown saved to {path}")

    def _export_docx(self):
        if not self._require_tree(): return
        path, _ = QFileDialog.getSaveFileName(self, "Export DOCX", "decomposition.docx", "Word (*.docx)")
        if path:
            ExportManager.export_docx(ExportManager.export_markdown(self.root), path)

    def _export_pdf(self):
        if not self._require_tree(): return
        path, _ = QFileDialog.getSaveFileName(self, "Export PDF", "decomposition.pdf", "PDF (*.pdf)")
        if path:
            ExportManager.export_pdf(ExportManager.export_markdown(self.root), path)

    @pyqtSlot(str)
    def _append_log(self, text):
        self.journal.append(text.strip())

    def closeEvent(self, event):
        self.worker.stop()
        super().closeEvent(event)


def main():
    setup_project_files()
    load_dotenv()
    app = QApplication(sys.argv)
    log_stream = LogStream()
    sys.stdout = log_stream
    window = BedrockUI(log_stream.log_signal)

    signal.signal(signal.SIGINT, lambda *args: QApplication.quit())
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
