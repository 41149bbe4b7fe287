import pytest

from agenda.core import config


def test_get_bool_and_list_helpers() -> None:
    assert config._get_bool(' Yes ') is True
    assert config._get_bool(None, default=True) is True
    assert config._get_list('http://a.test, ,http://b.test', default=[]) == ['http://a.test', 'http://b.test']


def test_validate_runtime_config_rejects_default_cron_secret_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'CRON_SECRET', 'change-me')

    with pytest.raises(RuntimeError, match='CRON_SECRET'):
        config.validate_runtime_config()


def test_validate_runtime_config_rejects_uneven_slot_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'SLOT_INTERVAL_MINUTES', 25)

    with pytest.raises(RuntimeError, match='SLOT_INTERVAL_MINUTES'):
        config.validate_runtime_config()
