"""
Tests for configuration management

Tests cover:
- Mail defaults
- Persistence to the JSON file
- Validation of updated values
- Broken configuration files
"""
import json

import pytest

from src.utils.config_manager import ConfigManager, MailConfig
from src.utils.errors import ConfigFileError, ConfigurationError, MissingConfigError


class TestMailDefaults:
    """Tests for default mail settings"""

    def test_defaults(self, config_manager):
        mail = config_manager.get_mail_config()

        assert mail.smtp_host == "smtp.exmail.qq.com"
        assert mail.smtp_port == 465
        assert mail.use_tls is True
        assert mail.is_enabled is False
        assert mail.sender_email == ""
        assert mail.recipient_emails == []
        assert mail.command_timeout == 60.0

    def test_default_file_written(self, config_manager):
        data = json.loads(config_manager.path.read_text(encoding="utf-8"))
        assert data["mail"]["smtp_port"] == 465

    def test_mail_config_is_a_copy(self, config_manager):
        mail = config_manager.get_mail_config()
        mail.recipient_emails.append("a@example.com")

        assert config_manager.get_mail_config().recipient_emails == []


class TestSetConfig:
    """Tests for updating settings"""

    def test_value_persisted(self, config_manager):
        config_manager.set_config("mail.sender_email", "reporter@example.com")

        data = json.loads(config_manager.path.read_text(encoding="utf-8"))
        assert data["mail"]["sender_email"] == "reporter@example.com"

    def test_not_persisted_when_asked(self, config_manager):
        config_manager.set_config("mail.is_enabled", True, persist=False)

        assert config_manager.get_mail_config().is_enabled is True
        data = json.loads(config_manager.path.read_text(encoding="utf-8"))
        assert data["mail"]["is_enabled"] is False

    def test_recipients_trimmed(self, config_manager):
        config_manager.set_config(
            "mail.recipient_emails", [" a@example.com ", "", "b@example.com"]
        )
        assert config_manager.get_mail_config().recipient_emails == [
            "a@example.com",
            "b@example.com",
        ]

    def test_unicode_preserved(self, config_manager):
        config_manager.set_config("mail.sender_name", "张三")

        text = config_manager.path.read_text(encoding="utf-8")
        assert "张三" in text

    @pytest.mark.parametrize(
        "key, value",
        [
            ("mail.smtp_port", 0),
            ("mail.smtp_port", 70000),
            ("mail.sender_email", "not-an-address"),
            ("mail.recipient_emails", ["bad@@invalid"]),
            ("mail.connect_timeout", -1),
        ],
    )
    def test_invalid_values_rejected(self, config_manager, key, value):
        with pytest.raises(ConfigurationError):
            config_manager.set_config(key, value)

        assert config_manager.get_mail_config() == MailConfig()

    @pytest.mark.parametrize("key", ["mail.nope", "nope.smtp_port"])
    def test_unknown_key(self, config_manager, key):
        with pytest.raises(MissingConfigError):
            config_manager.set_config(key, 1)

    def test_log_level_normalised(self, config_manager):
        config_manager.set_config("logging.log_level", "debug")
        assert config_manager.get_logging_config().log_level == "DEBUG"

    def test_log_level_rejected(self, config_manager):
        with pytest.raises(ConfigurationError):
            config_manager.set_config("logging.log_level", "chatty")

    def test_reset_to_defaults(self, config_manager):
        config_manager.set_config("mail.smtp_port", 587)
        config_manager.reset_to_defaults()

        assert config_manager.get_mail_config().smtp_port == 465


class TestLoading:
    """Tests for reading an existing configuration file"""

    @pytest.fixture(autouse=True)
    def fresh_singleton(self):
        ConfigManager._instance = None
        ConfigManager._initialized = False
        yield
        ConfigManager._instance = None
        ConfigManager._initialized = False

    def test_existing_file_loaded(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"mail": {"sender_email": "reporter@example.com", "smtp_port": 587}}),
            encoding="utf-8",
        )

        mail = ConfigManager(path).get_mail_config()

        assert mail.sender_email == "reporter@example.com"
        assert mail.smtp_port == 587
        assert mail.smtp_host == "smtp.exmail.qq.com"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigFileError):
            ConfigManager(path)

    def test_schema_mismatch(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"mail": {"smtp_port": "many"}}), encoding="utf-8")

        with pytest.raises(ConfigFileError):
            ConfigManager(path)

    def test_singleton(self, tmp_path):
        first = ConfigManager(tmp_path / "config.json")
        assert ConfigManager() is first
