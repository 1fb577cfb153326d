"""Tests for CLI configuration module."""

import json

from cli.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.markd' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()
    assert config.data['server_host'] == Config.DEFAULT_CONFIG['server_host']
    assert config.data['timeout'] == 30
    assert config.data['reconcile_interval'] == 60.0
    assert 'session_key' not in config.data
    assert config.get_session() is None


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.markd' / 'config.json'
    config_path.parent.mkdir(parents=True)
    with open(config_path, 'w') as f:
        json.dump({'server_host': 'example.com', 'server_port': 9000, 'reconnect_delay': 2}, f)

    config = Config(config_path)

    assert config.get_base_url() == 'http://example.com:9000'
    assert config.get_reconnect_config() == {'reconnect_delay': 2.0, 'max_reconnect_delay': 30.0}
    assert config.get_timeout() == 30.0


def test_config_session_round_trip(temp_config):
    """Test saving, reading and clearing the stored session."""
    temp_config.set_session('alice', 'mk_abc')

    assert temp_config.get_session() == ('alice', 'mk_abc')
    with open(temp_config.config_path, 'r') as f:
        assert json.load(f)['session_key'] == 'mk_abc'

    reloaded = Config(temp_config.config_path)
    assert reloaded.get_session() == ('alice', 'mk_abc')

    reloaded.clear_session()
    assert Config(temp_config.config_path).get_session() is None


def test_corrupted_config_is_backed_up(tmp_path):
    """Test that an unreadable file falls back to defaults and is backed up."""
    config_path = tmp_path / '.markd' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{not json')

    config = Config(config_path)

    assert config.data == Config.DEFAULT_CONFIG
    assert config_path.with_suffix('.json.bak').read_text() == '{not json'


def test_set_server_persists(temp_config):
    """Test that server overrides are saved and used for the base URL."""
    temp_config.set_server('markd.example', 9443)

    assert temp_config.get_base_url() == 'http://markd.example:9443'
    assert Config(temp_config.config_path).get_base_url() == 'http://markd.example:9443'

    temp_config.set_server(port=8080)
    assert temp_config.get_base_url() == 'http://markd.example:8080'
