import json
import logging

import pytest

from easy_apply_agent.config import Config
from easy_apply_agent.utils.profile_data import Profile, load_profile


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


def test_missing_file_writes_defaults(config_path):
    config = Config(str(config_path))

    assert config_path.exists()
    assert config.get("navigation.max_steps") == 12
    assert config.get("confirmation.assume_success_on_disappear") is True


def test_missing_file_is_left_alone_when_asked(config_path):
    Config(str(config_path), create_if_missing=False)

    assert not config_path.exists()


def test_user_values_merge_over_defaults(config_path):
    config_path.write_text(json.dumps({"navigation": {"max_steps": 20}, "extra": 1}))

    config = Config(str(config_path))

    assert config.get("navigation.max_steps") == 20
    assert config.get("navigation.stall_threshold") == Config.DEFAULTS["navigation"]["stall_threshold"]
    assert config.get("extra") == 1


def test_corrupt_file_falls_back_to_defaults(config_path, caplog):
    config_path.write_text("{not json")

    with caplog.at_level(logging.ERROR):
        config = Config(str(config_path))

    assert config.get("runner.max_applications") == 0
    assert "Error loading configuration" in caplog.text


def test_dotted_get_and_set(config_path):
    config = Config(str(config_path), create_if_missing=False)

    assert config.get("navigation.missing", "fallback") == "fallback"
    assert config.get("navigation.max_steps.deeper") is None
    assert config.set("runner.max_applications", 5, persist=False)
    assert config.set("new.section.value", "x", persist=False)

    assert config.get("runner.max_applications") == 5
    assert config.get("new.section.value") == "x"
    assert not config_path.exists()


def test_set_persists(config_path):
    Config(str(config_path)).set("timing.short_delay", 0.1)

    assert Config(str(config_path)).get("timing.short_delay") == 0.1


def test_defaults_are_not_shared_between_instances(tmp_path):
    first = Config(str(tmp_path / "a.json"), create_if_missing=False)
    first.set("defaults.country", "Chile", persist=False)

    second = Config(str(tmp_path / "b.json"), create_if_missing=False)

    assert second.get("defaults.country") == "India"


def test_api_key_comes_from_configured_variable(config_path, monkeypatch):
    config = Config(str(config_path), create_if_missing=False)
    config.set("answer_service.api_key_env", "EASY_APPLY_TEST_KEY", persist=False)

    monkeypatch.delenv("EASY_APPLY_TEST_KEY", raising=False)
    assert config.get_api_key() == ""
    monkeypatch.setenv("EASY_APPLY_TEST_KEY", "secret")
    assert config.get_api_key() == "secret"


def test_storage_and_cache_paths_expand_user(config_path):
    config = Config(str(config_path), create_if_missing=False)

    assert not config.get_storage_path("results").startswith("~")
    assert config.get_cache_path().endswith("answer_cache.json")
    config.set("cache.path", None, persist=False)
    assert config.get_cache_path() is None


def test_load_yaml_profile_with_cv_file(tmp_path):
    (tmp_path / "cv.txt").write_text("Ten years of distributed systems.\n")
    (tmp_path / "profile.yaml").write_text(
        "cv_path: cv.txt\n"
        "contact:\n"
        "  first_name: Grace\n"
        "  last_name: Hopper\n"
        "  city: Arlington\n"
        "defaults:\n"
        "  experience_years: 10\n"
        "answers:\n"
        "  Do you need sponsorship?: 'No'\n"
    )

    profile = load_profile(str(tmp_path / "profile.yaml"), base_defaults={"country": "United States", "city": "Boston"})

    assert profile.profile_text == "Ten years of distributed systems."
    assert profile.contact["full_name"] == "Grace Hopper"
    assert profile.default("experience_years") == "10"
    assert profile.default("country") == "United States"
    assert profile.answer_for("  Do you need   SPONSORSHIP? ") == "No"
    assert profile.context["location"] == "Arlington"
    assert profile.get_field_value("contact.city") == "Arlington"
    assert profile.get_field_value("contact") is None


def test_load_json_profile(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({"profile_text": "Designer", "context": {"notice_period": "30 days"}}))

    profile = load_profile(str(path))

    assert profile.profile_text == "Designer"
    assert "- My notice period: 30 days" in profile.context_lines()
    assert profile.context["years_of_experience"] == "4"


def test_profile_must_be_a_mapping(tmp_path):
    path = tmp_path / "profile.yml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        load_profile(str(path))


def test_no_profile_uses_configured_defaults():
    profile = load_profile(None, base_defaults={"city": "Lisbon"})

    assert profile.contact == {}
    assert profile.default("city") == "Lisbon"
    assert profile.explicit_value_for("First name") is None


def test_explicit_value_uses_contact_keywords():
    profile = Profile.from_dict({"contact": {"email": "a@b.c", "zip": "411001"}})

    assert profile.explicit_value_for("Email address") == "a@b.c"
    assert profile.explicit_value_for("ZIP / Postal code") == "411001"
    assert profile.explicit_value_for("Favourite editor") is None
