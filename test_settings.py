"""
Test: Configuration Managers
============================
"""

import json

from settings_manager import DEFAULT_PROMPTS, ModelManager, PromptManager, SettingsManager


def test_settings_defaults_without_file(tmp_path):
    settings = SettingsManager(tmp_path / "settings.json")
    assert settings.get("max_retries") == 3
    assert settings.get("base_delay_ms") == 2000
    assert settings.get("unknown", "fallback") == "fallback"


def test_settings_file_overrides(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_retries": 1, "roles": {"architect": {"model_id": "m-arch"}}}))
    settings = SettingsManager(path)
    assert settings.get("max_retries") == 1
    assert settings.get_role("architect") == {"model_id": "m-arch", "temperature": 0.3}
    assert settings.get_role("analyst")["model_id"] == settings.get("model_id")


def test_corrupt_settings_fall_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    assert SettingsManager(path).get("base_delay_ms") == 2000


def test_defaults_not_shared_between_instances(tmp_path):
    a = SettingsManager(tmp_path / "a.json")
    a.settings["roles"]["analyst"]["temperature"] = 0.9
    assert SettingsManager(tmp_path / "b.json").get_role("analyst")["temperature"] == 0.2


def test_set_role_persists(tmp_path):
    path = tmp_path / "settings.json"
    SettingsManager(path).set_role("tutor", "m-tutor", 0.5)
    assert SettingsManager(path).get_role("tutor") == {"model_id": "m-tutor", "temperature": 0.5}


def test_model_manager(tmp_path):
    path = tmp_path / "models.json"
    models = ModelManager(path)
    assert models.add_model("Flash", "g/flash")
    assert not models.add_model("Flash again", "g/flash")
    assert ModelManager(path).get_all() == [{"name": "Flash", "id": "g/flash"}]
    assert models.delete_model("g/flash")
    assert ModelManager(path).get_all() == []


def test_prompt_manager_merges_defaults(tmp_path):
    path = tmp_path / "prompts.json"
    path.write_text(json.dumps({"elaborate": {"user_template": "Explain {topic}"}}))
    prompts = PromptManager(path)
    assert prompts.get("elaborate") == {"system": DEFAULT_PROMPTS["elaborate"]["system"],
                                        "user_template": "Explain {topic}"}
    assert prompts.get("decompose_topic") == DEFAULT_PROMPTS["decompose_topic"]


def test_default_templates_format():
    assert "Money" in DEFAULT_PROMPTS["analyze_query"]["user_template"].format(query="Money")
    text = DEFAULT_PROMPTS["decompose_topic"]["user_template"].format(
        topic="Money", domain="Economics", enrichment="e", mode="CONCEPT")
    assert "{name, description, is_fundamental, reasoning}" in text
    assert "Trust" in DEFAULT_PROMPTS["verify_component"]["user_template"].format(component="Trust", context="Money")


def test_update_and_role_without_temperature(tmp_path):
    path = tmp_path / "settings.json"
    settings = SettingsManager(path)
    settings.update(max_retries=0, base_delay_ms=500)
    settings.set_role("illustrator", "img/model")
    reloaded = SettingsManager(path)
    assert reloaded.get("max_retries") == 0
    assert reloaded.get("base_delay_ms") == 500
    assert reloaded.get_role("illustrator") == {"model_id": "img/model", "temperature": 0.2}


def test_prompt_set_persists(tmp_path):
    path = tmp_path / "prompts.json"
    PromptManager(path).set("illustration", "", "Sketch {topic}")
    assert PromptManager(path).get("illustration")["user_template"] == "Sketch {topic}"
