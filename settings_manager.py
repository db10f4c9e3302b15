# Script Version: 1.0.0 | Phase 2: Configuration
# Description: Manages application settings, model definitions and externalized prompts for Bedrock.

import copy
import json
import sys
from pathlib import Path

DEFAULT_PROMPTS = {
    "analyze_query": {
        "system": "You analyze queries for a first-principles decomposition engine. Return only valid JSON.",
        "user_template": (
            "Analyze this user query: \"{query}\".\n"
            "Return a JSON object with keys: original_query, corrected_query (spelling and grammar fixed), "
            "intent (one of CONCEPT, PROBLEM, COMPARE, WHY), domain (field of study), "
            "is_ambiguous (true if multiple meanings exist), ambiguity_options (3 distinct readings if ambiguous), "
            "enrichment (guidance to strip away convention and focus on physics/economics), "
            "predicted_topics (3-4 likely sub-components)."
        )
    },
    "decompose_topic": {
        "system": "You perform rigorous first-principles decompositions. Return only valid JSON.",
        "user_template": (
            "Perform a First Principles Decomposition on the topic: \"{topic}\".\n"
            "Context/Domain: {domain}.\nEnrichment Guide: {enrichment}.\nSearch Mode: {mode}.\n"
            "Break it down into its most basic physical or logical components. Identify what is a fundamental "
            "constraint (Physics/Math) vs what is a design choice (Convention/Human).\n"
            "Return unique, distinct components. Do not list the main topic itself as a component.\n"
            "Return a JSON object with keys: core_concept, analogy, why_important, "
            "components (list of {{name, description, is_fundamental, reasoning}}), "
            "assumptions (3-4 conventions that limit current thinking)."
        )
    },
    "verify_component": {
        "system": "You verify whether a component is fundamental. Return only valid JSON.",
        "user_template": (
            "Analyze the component \"{component}\" within the context of \"{context}\".\n"
            "Is this a fundamental building block (Law of Physics, Raw Material, Mathematical Truth) or can it be "
            "decomposed further? If it is not fundamental, break it down. If it is, explain why in the reasoning.\n"
            "Do not list \"{component}\" itself as a sub-component.\n"
            "Return a JSON object with keys: core_concept, analogy, why_important, "
            "components (list of {{name, description, is_fundamental, reasoning}}), assumptions."
        )
    },
    "elaborate": {
        "system": "You explain concepts from first principles.",
        "user_template": (
            "Provide a detailed, first-principles explanation of \"{topic}\".\nContext: {description}.\n"
            "Explain the 'Why' and the 'How' deeply. Focus on the mechanics, physics, or underlying logic. "
            "Keep it under 300 words but make it dense with insight."
        )
    },
    "challenge_question": {
        "system": "You are a Socratic tutor.",
        "user_template": (
            "Write one Socratic question that tests whether a learner truly understands \"{topic}\".\n"
            "Context: {description}.\nThe question must not be answerable by recalling the definition alone. "
            "Return only the question."
        )
    },
    "illustration": {
        "system": "",
        "user_template": (
            "A clean, schematic, blueprint-style conceptual illustration of {topic}. "
            "Minimalist, technical, high contrast, teal and white lines on dark background."
        )
    }
}


class SettingsManager:
    """
    Handles loading and saving of user settings to a local JSON file.
    """
    DEFAULT_SETTINGS = {
        "api_timeout": 360,
        "font_size": 15,
        "model_id": "google/gemini-2.0-flash-lite-preview-02-05:free",
        "max_retries": 3,
        "base_delay_ms": 2000,
        "roles": {
            "analyst": {"temperature": 0.2},
            "architect": {"temperature": 0.3},
            "tutor": {"temperature": 0.4},
            "illustrator": {"model_id": "google/gemini-2.5-flash-image-preview"}
        }
    }

    def __init__(self, filename="settings.json"):
        self.filepath = Path(filename)
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.load()

    def load(self):
        if not self.filepath.exists():
            return
        try:
            with open(self.filepath, "r") as f:
                data = json.load(f)
                self.settings.update(data)
                print(f"[SETTINGS] Configuration loaded from {self.filepath}")
        except (json.JSONDecodeError, IOError) as e:
            print(f"[WARNING] Failed to load settings: {e}", file=sys.stderr)

    def save(self):
        try:
            with open(self.filepath, "w") as f:
                json.dump(self.settings, f, indent=4)
            print(f"[SETTINGS] Configuration saved to {self.filepath}")
        except IOError as e:
            print(f"[ERROR] Failed to save settings: {e}", file=sys.stderr)

    def get(self, key, default=None):
        value = self.settings.get(key, self.DEFAULT_SETTINGS.get(key))
        return default if value is None else value

    def update(self, **values):
        self.settings.update(values)
        self.save()

    def get_role(self, role):
        """Role config falls back to the global model_id and a 0.2 temperature."""
        role_cfg = dict(self.DEFAULT_SETTINGS["roles"].get(role, {}))
        role_cfg.update(self.settings.get("roles", {}).get(role, {}))
        role_cfg.setdefault("model_id", self.get("model_id"))
        role_cfg.setdefault("temperature", 0.2)
        return role_cfg

    def set_role(self, role, model_id, temperature=None):
        role_cfg = {"model_id": model_id}
        if temperature is not None:
            role_cfg["temperature"] = temperature
        self.settings.setdefault("roles", {})[role] = role_cfg
        self.save()


class ModelManager:
    """
    Handles loading and saving of model definitions to models.json.
    """
    def __init__(self, filename="models.json"):
        self.filepath = Path(filename)
        self.models = []
        self.load()

    def load(self):
        if not self.filepath.exists():
            self.models = []
            return
        try:
            with open(self.filepath, "r") as f:
                data = json.load(f)
                self.models = data.get("models", [])
                print(f"[MODELS] {len(self.models)} models loaded from {self.filepath}")
        except (json.JSONDecodeError, IOError) as e:
            print(f"[ERROR] Failed to load models.json: {e}", file=sys.stderr)
            self.models = []

    def save(self):
        data = {"models": self.models}
        try:
            with open(self.filepath, "w") as f:
                json.dump(data, f, indent=2)
        except IOError as e:
            print(f"[ERROR] Failed to save models.json: {e}", file=sys.stderr)

    def get_all(self):
        return self.models

    def add_model(self, name, model_id):
        for m in self.models:
            if m['id'] == model_id:
                return False
        self.models.append({"name": name, "id": model_id})
        self.save()
        return True

    def delete_model(self, model_id):
        before = len(self.models)
        self.models = [m for m in self.models if m['id'] != model_id]
        if len(self.models) != before:
            self.save()
            return True
        return False


class PromptManager:
    """
    Externalized prompt templates (prompts.json). Missing keys fall back to DEFAULT_PROMPTS.
    """
    def __init__(self, filename="prompts.json"):
        self.filepath = Path(filename)
        self.prompts = copy.deepcopy(DEFAULT_PROMPTS)
        self.load()

    def load(self):
        if not self.filepath.exists():
            return
        try:
            with open(self.filepath, "r") as f:
                self.prompts.update(json.load(f))
                print(f"[PROMPTS] {len(self.prompts)} prompts loaded from {self.filepath}")
        except (json.JSONDecodeError, IOError) as e:
            print(f"[WARNING] Failed to load prompts.json: {e}", file=sys.stderr)

    def save(self):
        try:
            with open(self.filepath, "w") as f:
                json.dump(self.prompts, f, indent=2)
        except IOError as e:
            print(f"[ERROR] Failed to save prompts.json: {e}", file=sys.stderr)

    def get(self, key):
        p = dict(DEFAULT_PROMPTS.get(key, {}))
        p.update(self.prompts.get(key, {}))
        return p

    def set(self, key, system, user_template):
        self.prompts[key] = {"system": system, "user_template": user_template}
        self.save()
