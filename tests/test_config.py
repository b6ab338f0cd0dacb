"""
Tests for Config — source priority (ENV > .env > config.yaml) and validation.
"""

import pytest
import yaml

from browserbridge.config import CONFIG_KEYS, BrowserSettings, Config
from browserbridge.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Host environment must not leak into the tests."""
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "home" / "config.yaml"
    path.parent.mkdir()
    return path


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


def load(config_file, project) -> Config:
    return Config(config_file=config_file, cwd=project)


class TestDefaults:
    def test_defaults_without_any_source(self, config_file, project):
        settings = load(config_file, project).browser_settings()
        assert settings == BrowserSettings()
        assert settings.browser_type == "msedge"
        assert settings.headless is False
        assert settings.navigation_timeout == 30000
        assert settings.action_timeout == 10000
        assert settings.messenger_url == "https://www.messenger.com"


class TestPriority:
    def test_yaml_values(self, config_file, project):
        config_file.write_text(yaml.safe_dump({"BROWSER_TYPE": "chromium", "HEADLESS": True}))
        settings = load(config_file, project).browser_settings()
        assert settings.browser_type == "chromium"
        assert settings.headless is True

    def test_dotenv_beats_yaml(self, config_file, project):
        config_file.write_text(yaml.safe_dump({"ACTION_TIMEOUT": 5000}))
        (project / ".env").write_text('# local\nACTION_TIMEOUT="2500"\n')
        assert load(config_file, project).browser_settings().action_timeout == 2500

    def test_env_beats_dotenv(self, config_file, project, monkeypatch):
        (project / ".env").write_text("BROWSER_TYPE=chrome\n")
        monkeypatch.setenv("BROWSER_TYPE", "firefox")
        assert load(config_file, project).browser_settings().browser_type == "firefox"

    def test_dotenv_found_in_parent(self, config_file, project):
        nested = project / "a" / "b"
        nested.mkdir(parents=True)
        (project / ".env").write_text("EDGE_PROFILE=Profile 2\n")
        assert Config(config_file=config_file, cwd=nested).browser_settings().profile == "Profile 2"

    def test_set_is_in_memory(self, config_file, project):
        config = load(config_file, project)
        config.set("HEADLESS", "yes")
        assert config.browser_settings().headless is True
        assert not config_file.exists()


class TestValidation:
    def test_unknown_browser_type(self, config_file, project, monkeypatch):
        monkeypatch.setenv("BROWSER_TYPE", "netscape")
        with pytest.raises(ConfigError, match="BROWSER_TYPE"):
            load(config_file, project).browser_settings()

    def test_broken_yaml(self, config_file, project):
        config_file.write_text("BROWSER_TYPE: [unclosed\n")
        with pytest.raises(ConfigError, match="not valid YAML"):
            load(config_file, project)

    def test_yaml_must_be_mapping(self, config_file, project):
        config_file.write_text("- msedge\n- chrome\n")
        with pytest.raises(ConfigError, match="mapping"):
            load(config_file, project)

    def test_browser_type_case_insensitive(self, config_file, project, monkeypatch):
        monkeypatch.setenv("BROWSER_TYPE", "MSEdge")
        assert load(config_file, project).browser_settings().browser_type == "msedge"

    @pytest.mark.parametrize("value", ["soon", "-5", "0"])
    def test_bad_timeouts(self, config_file, project, monkeypatch, value):
        monkeypatch.setenv("NAVIGATION_TIMEOUT", value)
        with pytest.raises(ConfigError, match="NAVIGATION_TIMEOUT"):
            load(config_file, project).browser_settings()

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("off", False), ("", False)])
    def test_headless_parsing(self, config_file, project, monkeypatch, value, expected):
        monkeypatch.setenv("HEADLESS", value)
        assert load(config_file, project).browser_settings().headless is expected

    def test_user_data_dir_expanded(self, config_file, project, monkeypatch):
        monkeypatch.setenv("EDGE_USER_DATA_DIR", "~/edge-profile")
        settings = load(config_file, project).browser_settings()
        assert not settings.user_data_dir.startswith("~")
        assert settings.user_data_dir.endswith("edge-profile")

    def test_messenger_url_trailing_slash(self, config_file, project, monkeypatch):
        monkeypatch.setenv("MESSENGER_URL", "https://www.messenger.com/")
        assert load(config_file, project).browser_settings().messenger_url == "https://www.messenger.com"
