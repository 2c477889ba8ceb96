"""Tests for connection settings."""

import pytest

from moodle_grader.config import ConfigError, ConfigLoader, MoodleSettings, resolve_settings


def _write_config(path, body: str):
    path.write_text(body, encoding="utf-8")
    return path


def test_load_settings_from_yaml(tmp_path):
    _write_config(
        tmp_path / "moodle.yaml",
        "moodle:\n  base_url: https://moodle.test\n  username: teacher\n  password: secret\n",
    )

    settings = ConfigLoader(tmp_path).load_settings("moodle.yaml")

    assert settings == MoodleSettings("https://moodle.test", "teacher", "secret")
    assert settings.missing == []


def test_url_key_is_accepted(tmp_path):
    path = _write_config(tmp_path / "moodle.yaml", "moodle:\n  url: https://moodle.test\n")

    settings = ConfigLoader().load_settings(path)

    assert settings.base_url == "https://moodle.test"
    assert settings.missing == ["username", "password"]


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        ConfigLoader(tmp_path).load_settings("nope.yaml")


def test_empty_config_file(tmp_path):
    path = _write_config(tmp_path / "moodle.yaml", "")

    assert ConfigLoader().load_settings(path) == MoodleSettings()


def test_explicit_values_win_over_config_file(tmp_path):
    path = _write_config(
        tmp_path / "moodle.yaml",
        "moodle:\n  base_url: https://file.test\n  username: file-user\n  password: file-pass\n",
    )

    settings = resolve_settings(MoodleSettings(username="flag-user"), path)

    assert settings == MoodleSettings("https://file.test", "flag-user", "file-pass")


def test_without_config_file_settings_pass_through():
    explicit = MoodleSettings(base_url="https://moodle.test")

    assert resolve_settings(explicit) is explicit


def test_password_not_in_repr():
    assert "secret" not in repr(MoodleSettings("https://moodle.test", "teacher", "secret"))


@pytest.mark.parametrize(
    "body, message",
    [
        ("moodle: [1, 2]\n", "'moodle' in .* must be a mapping"),
        ("- base_url: https://moodle.test\n", "mapping at the top level"),
        ("moodle: {base_url: [\n", "Invalid YAML"),
    ],
)
def test_malformed_config_raises_config_error(tmp_path, body, message):
    path = _write_config(tmp_path / "moodle.yaml", body)

    with pytest.raises(ConfigError, match=message):
        ConfigLoader().load_settings(path)
