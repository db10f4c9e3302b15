# Script Version: 1.0.0 | Phase 3: Interaction Flow
# Description: Custom widgets (DecompositionTreeWidget).

from PyQt6.QtWidgets import QTreeWidget, QTreeWidgetItem, QMenu
from PyQt6.QtGui import QAction, QColor, QBrush
from PyQt6.QtCore import Qt

from state import NodeType

TYPE_COLORS = {
    NodeType.ROOT: "#6366f1",
    NodeType.COMPONENT: "#0ea5e9",
    NodeType.FUNDAMENTAL: "#10b981",
}


class DecompositionTreeWidget(QTreeWidget):
    """
    Renders the (immutable) decomposition tree. Rebuilt from scratch on every
    tree replacement; actions are forwarded to the callbacks by node id.
    """
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setHeaderLabels(["Component", "Type", "Status"])
        self.setColumnWidth(0, 360)
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.customContextMenuRequested.connect(self._show_context_menu)
        self.itemClicked.connect(self._on_clicked)
        self.itemDoubleClicked.connect(self._on_double_clicked)

        self.expand_callback = None
        self.select_callback = None
        self.elaborate_callback = None
        self.question_callback = None
        self.mastered_callback = None
        self._nodes = {}

    def load_tree(self, root, selected_id=None):
        self.clear()
        self._nodes = {}
        if root is None:
            return
        top = self._add_item(root, None)
        self.addTopLevelItem(top)
        top.setExpanded(True)
        if selected_id is not None:
            for item in self.findItems("*", Qt.MatchFlag.MatchWildcard | Qt.MatchFlag.MatchRecursive):
                if item.data(0, Qt.ItemDataRole.UserRole) == selected_id:
                    self.setCurrentItem(item)
                    break

    def _status_text(self, node):
        if node.is_loading:
            return "Processing..."
        flags = []
        if node.is_elaborating:
            flags.append("elaborating")
        if node.is_generating_question:
            flags.append("questioning")
        if node.is_mastered:
            flags.append("mastered")
        if node.has_children:
            flags.append(f"{len(node.children)} parts")
        return ", ".join(flags)

    def _add_item(self, node, parent_item):
        label = "Fundamental Principle" if node.type == NodeType.FUNDAMENTAL else node.type.value.title()
        item = QTreeWidgetItem([node.name, label, self._status_text(node)])
        item.setData(0, Qt.ItemDataRole.UserRole, node.id)
        item.setToolTip(0, node.description)
        item.setForeground(1, QBrush(QColor(TYPE_COLORS[node.type])))
        self._nodes[node.id] = node
        if parent_item is not None:
            parent_item.addChild(item)

        # Collapsed nodes keep their children in memory but do not render them.
        if node.is_expanded or node.type == NodeType.ROOT:
            for child in node.children:
                self._add_item(child, item)
            item.setExpanded(True)
        return item

    def _node_for(self, item):
        if item is None:
            return None
        return self._nodes.get(item.data(0, Qt.ItemDataRole.UserRole))

    def _on_clicked(self, item, _column):
        node = self._node_for(item)
        if node and self.select_callback:
            self.select_callback(node.id)

    def _on_double_clicked(self, item, _column):
        node = self._node_for(item)
        if node and self.expand_callback and not node.is_loading and not node.is_fundamental:
            self.expand_callback(node.id)

    def _show_context_menu(self, pos):
        node = self._node_for(self.itemAt(pos))
        if not node: return

        menu = QMenu()
        if not node.is_fundamental:
            expand_action = QAction("Collapse" if node.has_children and node.is_expanded else "Decompose", self)
            expand_action.setEnabled(not node.is_loading)
            expand_action.triggered.connect(lambda: self.expand_callback and self.expand_callback(node.id))
            menu.addAction(expand_action)

        elaborate_action = QAction("Elaborate", self)
        elaborate_action.setEnabled(not node.is_elaborating)
        elaborate_action.triggered.connect(lambda: self.elaborate_callback and self.elaborate_callback(node.id))
        question_action = QAction("Socratic Question", self)
        question_action.setEnabled(not node.is_generating_question)
        question_action.triggered.connect(lambda: self.question_callback and self.question_callback(node.id))
        mastered_action = QAction("Unmark Mastered" if node.is_mastered else "Mark Mastered", self)
        mastered_action.triggered.connect(lambda: self.mastered_callback and self.mastered_callback(node.id))

        menu.addAction(elaborate_action)
        menu.addAction(question_action)
        menu.addSeparator()
        menu.addAction(mastered_action)
        menu.exec(self.viewport().mapToGlobal(pos))
