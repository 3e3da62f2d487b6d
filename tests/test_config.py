import pytest

from goods_service.config import Config, load_config


def test_defaults_when_environment_is_empty():
    config = Config.from_env({})
    assert config.http_port == "8080"
    assert config.db_host == "postgres"
    assert config.redis_port == "6379"
    assert config.nats_url == "nats://nats:4222"
    assert config == Config()


def test_from_env_overrides_values():
    config = Config.from_env({"HTTP_PORT": "9090", "DB_NAME": "shop", "CLICKHOUSE_HOST": "ch"})
    assert config.http_port == "9090"
    assert config.db_name == "shop"
    assert config.ch_host == "ch"
    assert config.db_port == Config().db_port


def test_empty_value_falls_back_to_default():
    config = Config.from_env({"REDIS_HOST": ""})
    assert config.redis_host == Config().redis_host


def test_load_config_reads_file(tmp_path, monkeypatch):
    monkeypatch.delenv("DB_USER", raising=False)
    monkeypatch.delenv("NATS_URL", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("DB_USER=shopkeeper\nNATS_URL=nats://localhost:4222\n")
    config = load_config(env_file)
    assert config.db_user == "shopkeeper"
    assert config.nats_url == "nats://localhost:4222"


def test_process_environment_wins_over_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("HTTP_PORT=7000\n")
    monkeypatch.setenv("HTTP_PORT", "7100")
    assert load_config(env_file).http_port == "7100"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.env")