# Script Version: 1.0.0 | Phase 2: Configuration
# Description: General-purpose utility functions for Bedrock.
# Implementation: First-run file scaffolding, stdout-to-GUI log stream and the global crash handler.

import sys
import traceback
import json
from pathlib import Path
from PyQt6.QtCore import QObject, pyqtSignal

from settings_manager import DEFAULT_PROMPTS, SettingsManager


def crash_handler(exctype, value, tb):
    """Global exception handler for uncaught exceptions."""
    print("\n" + "!"*60)
    print("[CRASH HANDLER] Uncaught Exception Detected")
    print("!"*60)
    traceback.print_exception(exctype, value, tb, file=sys.__stderr__)
    sys.exit(1)


def setup_project_files(base_dir="."):
    """Ensures essential configuration files exist with valid defaults."""
    print("[INFO] Verifying project environment...")
    base = Path(base_dir)

    # .env
    env_path = base / ".env"
    if not env_path.exists():
        print("[INFO] Creating .env placeholder.")
        with open(env_path, "w") as f:
            f.write('OPENROUTER_API_KEY="YOUR_API_KEY_HERE"\n')

    # models.json - Template only, user must populate
    models_path = base / "models.json"
    if not models_path.exists():
        print("[INFO] Creating template models.json.")
        default_models = {
            "models": [
                {"name": "Gemini Flash Lite", "id": SettingsManager.DEFAULT_SETTINGS["model_id"]}
            ]
        }
        with open(models_path, "w") as f:
            json.dump(default_models, f, indent=2)

    # settings.json
    settings_path = base / "settings.json"
    if not settings_path.exists():
        print("[INFO] Creating default settings.json.")
        with open(settings_path, "w") as f:
            json.dump(SettingsManager.DEFAULT_SETTINGS, f, indent=4)

    # prompts.json
    prompts_path = base / "prompts.json"
    if not prompts_path.exists():
        print("[INFO] Creating default prompts.json.")
        with open(prompts_path, "w") as f:
            json.dump(DEFAULT_PROMPTS, f, indent=2)


class LogStream(QObject):
    """Redirects stdout to a PyQt signal for the Journal view."""
    log_signal = pyqtSignal(str)

    def write(self, text):
        if text.strip():
            self.log_signal.emit(str(text))

    def flush(self):
        pass
