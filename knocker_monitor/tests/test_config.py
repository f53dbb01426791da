"""
Configuration tests for knocker-monitor.
"""

import yaml

from knocker_monitor.config.config import Config
from knocker_monitor.config.settings import Settings


class TestConfig:
    """Test cases for Config."""

    def test_defaults(self):
        config = Config()
        assert config.journal.unit == 'knocker.service'
        assert config.journal.backend == 'journalctl'
        assert config.journal.backlog_size == Settings.DEFAULT_BACKLOG_SIZE
        assert config.monitor.open_retry_delay == 5.0
        assert config.monitor.reconnect_delay == 2.0
        assert config.monitor.schema_version == '1'
        assert config.service.auto_start is False
        assert config.validate() == []

    def test_load_yaml(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.dump({
            'journal': {'unit': 'knocker-dev.service', 'backlog_size': 20, 'colour': 'blue'},
            'notifications': {'on_knock': False},
            'plugins': {'x': 1},
        }))

        config = Config.load(path)

        assert config.journal.unit == 'knocker-dev.service'
        assert config.journal.backlog_size == 20
        assert config.notifications.on_knock is False
        assert config.notifications.on_error is True

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('')
        assert Config.load(path) == Config()

    def test_load_missing_file(self, tmp_path):
        assert Config.load(tmp_path / 'missing.yaml') == Config()

    def test_load_from_environment_path(self, tmp_path, monkeypatch):
        path = tmp_path / 'env.yaml'
        path.write_text(yaml.dump({'display': {'refresh_interval': 3}}))
        monkeypatch.setenv('KNOCKER_MONITOR_CONFIG', str(path))

        assert Config.load().display.refresh_interval == 3

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('KNOCKER_MONITOR_UNIT', 'other.service')
        monkeypatch.setenv('KNOCKER_MONITOR_BACKLOG_SIZE', '7')

        config = Config()

        assert config.journal.unit == 'other.service'
        assert config.service.unit == 'other.service'
        assert config.journal.backlog_size == 7
        assert config.get_env_overrides() == {'journal.unit': 'other.service', 'journal.backlog_size': 7}

    def test_save_and_load(self, tmp_path):
        path = tmp_path / 'nested' / 'config.yaml'
        config = Config()
        config.monitor.reconnect_delay = 0.5
        config.save(path)

        assert Config.load(path).monitor.reconnect_delay == 0.5

    def test_validate(self):
        config = Config()
        config.journal.backend = 'syslog'
        config.journal.backlog_size = -1
        config.monitor.reconnect_delay = 0
        config.logging.level = 'LOUD'

        errors = config.validate()

        assert any('journal backend' in e for e in errors)
        assert any('backlog size' in e for e in errors)
        assert any('reconnect delay' in e for e in errors)
        assert any('logging level' in e for e in errors)

    def test_file_backend_requires_path(self):
        config = Config()
        config.journal.backend = 'file'
        assert config.validate() == ["Journal backend 'file' requires journal.file"]

    def test_cli_overrides(self, tmp_path):
        config = Config()
        config.apply_cli_overrides({
            'unit': 'knocker-dev.service',
            'journal_file': tmp_path / 'knocker.jsonl',
            'backlog': 0,
            'log_level': None,
        })

        assert config.journal.unit == 'knocker-dev.service'
        assert config.service.unit == 'knocker-dev.service'
        assert config.journal.backend == 'file'
        assert config.journal.file == str(tmp_path / 'knocker.jsonl')
        assert config.journal.backlog_size == 0
        assert config.logging.level == Settings.DEFAULT_LOG_LEVEL

    def test_default_config_dict(self):
        data = Config.get_default_config_dict()
        assert set(data) == {'journal', 'monitor', 'service', 'notifications', 'display', 'logging'}
        assert data == Config().to_dict()
