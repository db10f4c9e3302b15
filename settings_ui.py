# Script Version: 1.0.0 | Phase 2: Configuration
# Description: Settings dialog for the API key, backoff parameters, per-role models and prompt templates.
# Implementation: Edits are staged in the widgets and written in one pass on save; the key goes to .env via python-dotenv.

import os
from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QTabWidget, QWidget,
    QLabel, QLineEdit, QPushButton, QFormLayout, QSpinBox,
    QDoubleSpinBox, QComboBox, QTextEdit, QListWidget, QListWidgetItem,
    QMessageBox, QGroupBox
)
from dotenv import set_key

from agents import API_KEY_PLACEHOLDER
from settings_manager import DEFAULT_PROMPTS

ENV_FILE = ".env"

# role -> what the role's model is used for
ROLE_DESCRIPTIONS = {
    "analyst": "Query analysis: spelling, intent, domain, ambiguity.",
    "architect": "Decomposition and component verification.",
    "tutor": "Deep-dive explanations and Socratic questions.",
    "illustrator": "Schematic illustration of the root topic (image model).",
}

# prompt key -> placeholders its user template receives
PROMPT_PLACEHOLDERS = {
    "analyze_query": "{query}",
    "decompose_topic": "{topic} {domain} {enrichment} {mode}",
    "verify_component": "{component} {context}",
    "elaborate": "{topic} {description}",
    "challenge_question": "{topic} {description}",
    "illustration": "{topic}",
}


class SettingsDialog(QDialog):
    def __init__(self, settings_manager, model_manager, prompt_manager, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Bedrock Settings")
        self.resize(820, 640)

        self.settings_mgr = settings_manager
        self.model_mgr = model_manager
        self.prompt_mgr = prompt_manager
        self._prompt_drafts = {}
        self._current_prompt = None

        layout = QVBoxLayout(self)
        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_backend_tab(), "Backend")
        self.tabs.addTab(self._build_roles_tab(), "Roles")
        self.tabs.addTab(self._build_models_tab(), "Models")
        self.tabs.addTab(self._build_prompts_tab(), "Prompts")
        layout.addWidget(self.tabs)

        buttons = QHBoxLayout()
        buttons.addStretch()
        save_btn = QPushButton("Save")
        save_btn.clicked.connect(self._save)
        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        buttons.addWidget(save_btn)
        buttons.addWidget(cancel_btn)
        layout.addLayout(buttons)

        self._populate()

    # --- Tabs ---

    def _build_backend_tab(self):
        tab = QWidget()
        form = QFormLayout(tab)

        self.api_key_input = QLineEdit()
        self.api_key_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.api_key_input.setPlaceholderText("sk-or-...")
        form.addRow("OpenRouter API Key:", self.api_key_input)
        self.mode_hint = QLabel("")
        self.mode_hint.setStyleSheet("color: gray; font-style: italic;")
        form.addRow("", self.mode_hint)

        self.font_size_spin = QSpinBox()
        self.font_size_spin.setRange(8, 32)
        self.font_size_spin.setSuffix(" pt")
        form.addRow("Font Size:", self.font_size_spin)

        self.timeout_spin = QSpinBox()
        self.timeout_spin.setRange(10, 999)
        self.timeout_spin.setSuffix(" s")
        form.addRow("Request Timeout:", self.timeout_spin)

        retry_box = QGroupBox("Rate limits (429) and overload (503)")
        retry_form = QFormLayout(retry_box)
        self.retries_spin = QSpinBox()
        self.retries_spin.setRange(0, 10)
        retry_form.addRow("Max retries:", self.retries_spin)
        self.delay_spin = QSpinBox()
        self.delay_spin.setRange(100, 60000)
        self.delay_spin.setSingleStep(500)
        self.delay_spin.setSuffix(" ms")
        retry_form.addRow("First delay (doubles each retry):", self.delay_spin)
        form.addRow(retry_box)
        return tab

    def _build_roles_tab(self):
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.role_widgets = {}
        for role, description in ROLE_DESCRIPTIONS.items():
            group = QGroupBox(role.capitalize())
            form = QFormLayout(group)
            hint = QLabel(description)
            hint.setStyleSheet("color: gray;")
            form.addRow(hint)
            model_combo = QComboBox()
            model_combo.setEditable(True)
            form.addRow("Model:", model_combo)
            temp_spin = None
            if role != "illustrator":
                temp_spin = QDoubleSpinBox()
                temp_spin.setRange(0.0, 1.0)
                temp_spin.setSingleStep(0.1)
                form.addRow("Temperature:", temp_spin)
            layout.addWidget(group)
            self.role_widgets[role] = (model_combo, temp_spin)
        layout.addStretch()
        return tab

    def _build_models_tab(self):
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.model_list = QListWidget()
        layout.addWidget(self.model_list)

        row = QHBoxLayout()
        self.new_model_name = QLineEdit()
        self.new_model_name.setPlaceholderText("Display name")
        self.new_model_id = QLineEdit()
        self.new_model_id.setPlaceholderText("OpenRouter model id (vendor/model)")
        add_btn = QPushButton("Add")
        add_btn.clicked.connect(self._add_model)
        row.addWidget(self.new_model_name)
        row.addWidget(self.new_model_id)
        row.addWidget(add_btn)
        layout.addLayout(row)

        remove_btn = QPushButton("Remove Selected")
        remove_btn.clicked.connect(self._remove_model)
        layout.addWidget(remove_btn)
        return tab

    def _build_prompts_tab(self):
        tab = QWidget()
        layout = QVBoxLayout(tab)

        top = QHBoxLayout()
        top.addWidget(QLabel("Operation:"))
        self.prompt_selector = QComboBox()
        self.prompt_selector.addItems(list(DEFAULT_PROMPTS.keys()))
        self.prompt_selector.currentTextChanged.connect(self._switch_prompt)
        top.addWidget(self.prompt_selector, 1)
        reset_btn = QPushButton("Restore Default")
        reset_btn.clicked.connect(self._restore_prompt)
        top.addWidget(reset_btn)
        layout.addLayout(top)

        self.placeholder_hint = QLabel("")
        self.placeholder_hint.setStyleSheet("color: gray;")
        layout.addWidget(self.placeholder_hint)

        layout.addWidget(QLabel("System Prompt:"))
        self.system_edit = QTextEdit()
        self.system_edit.setMaximumHeight(100)
        layout.addWidget(self.system_edit)
        layout.addWidget(QLabel("User Template:"))
        self.user_edit = QTextEdit()
        layout.addWidget(self.user_edit)
        return tab

    # --- Data ---

    def _populate(self):
        key = os.getenv("OPENROUTER_API_KEY", "")
        if key == API_KEY_PLACEHOLDER:
            key = ""
        self.api_key_input.setText(key)
        self.mode_hint.setText("Stored in .env. Without a key Bedrock runs offline on placeholder data.")
        self.font_size_spin.setValue(int(self.settings_mgr.get("font_size", 14)))
        self.timeout_spin.setValue(int(self.settings_mgr.get("api_timeout", 360)))
        self.retries_spin.setValue(int(self.settings_mgr.get("max_retries", 3)))
        self.delay_spin.setValue(int(self.settings_mgr.get("base_delay_ms", 2000)))

        self._refresh_models()
        for role, (combo, temp_spin) in self.role_widgets.items():
            role_cfg = self.settings_mgr.get_role(role)
            idx = combo.findData(role_cfg["model_id"])
            if idx >= 0:
                combo.setCurrentIndex(idx)
            else:
                combo.setEditText(role_cfg["model_id"])
            if temp_spin is not None:
                temp_spin.setValue(float(role_cfg["temperature"]))

        self._switch_prompt(self.prompt_selector.currentText())

    def _refresh_models(self):
        self.model_list.clear()
        models = self.model_mgr.get_all()
        for m in models:
            item = QListWidgetItem(f"{m['name']}  -  {m['id']}")
            item.setData(Qt.ItemDataRole.UserRole, m["id"])
            self.model_list.addItem(item)
        for combo, _temp in self.role_widgets.values():
            current = combo.currentData() or combo.currentText()
            combo.clear()
            for m in models:
                combo.addItem(m["name"], m["id"])
            idx = combo.findData(current)
            if idx >= 0:
                combo.setCurrentIndex(idx)
            elif current:
                combo.setEditText(current)

    def _add_model(self):
        name = self.new_model_name.text().strip()
        model_id = self.new_model_id.text().strip()
        if not (name and model_id):
            return
        if not self.model_mgr.add_model(name, model_id):
            QMessageBox.warning(self, "Models", f"'{model_id}' is already in the list.")
            return
        self.new_model_name.clear()
        self.new_model_id.clear()
        self._refresh_models()

    def _remove_model(self):
        item = self.model_list.currentItem()
        if item is None:
            return
        self.model_mgr.delete_model(item.data(Qt.ItemDataRole.UserRole))
        self._refresh_models()

    def _stash_prompt(self):
        if self._current_prompt:
            self._prompt_drafts[self._current_prompt] = {
                "system": self.system_edit.toPlainText(),
                "user_template": self.user_edit.toPlainText(),
            }

    def _switch_prompt(self, key):
        self._stash_prompt()
        self._current_prompt = key or None
        if not key:
            return
        data = self._prompt_drafts.get(key) or self.prompt_mgr.get(key)
        self.system_edit.setPlainText(data.get("system", ""))
        self.user_edit.setPlainText(data.get("user_template", ""))
        self.placeholder_hint.setText(f"Placeholders: {PROMPT_PLACEHOLDERS.get(key, '')}  (use {{{{ }}}} for literal braces)")

    def _restore_prompt(self):
        key = self._current_prompt
        if not key:
            return
        default = DEFAULT_PROMPTS[key]
        self.system_edit.setPlainText(default["system"])
        self.user_edit.setPlainText(default["user_template"])

    def _save(self):
        key = self.api_key_input.text().strip()
        if key:
            if not os.path.exists(ENV_FILE):
                open(ENV_FILE, "a").close()
            set_key(ENV_FILE, "OPENROUTER_API_KEY", key)
            os.environ["OPENROUTER_API_KEY"] = key

        self.settings_mgr.update(
            font_size=self.font_size_spin.value(),
            api_timeout=self.timeout_spin.value(),
            max_retries=self.retries_spin.value(),
            base_delay_ms=self.delay_spin.value(),
        )
        for role, (combo, temp_spin) in self.role_widgets.items():
            model_id = combo.currentData() or combo.currentText().strip()
            self.settings_mgr.set_role(role, model_id, temp_spin.value() if temp_spin is not None else None)

        self._stash_prompt()
        for prompt_key, draft in self._prompt_drafts.items():
            if draft != self.prompt_mgr.get(prompt_key):
                self.prompt_mgr.set(prompt_key, draft["system"], draft["user_template"])

        QMessageBox.information(self, "Saved", "Settings saved. Restart Bedrock to reconnect the backend.")
        self.accept()
