import pytest

from touchorm.adapters import AdapterConfigurationError, ConnectionConfig


def test_defaults_are_applied():
    config = ConnectionConfig(url="sqlite:///:memory:")
    assert config.autocommit is False
    assert config.isolation_level is None
    assert config.timeout is None


def test_descriptive_label_includes_autocommit():
    config = ConnectionConfig(url="sqlite:///app.db", autocommit=True)
    assert config.descriptive_label() == "sqlite:///app.db (autocommit=True)"


def test_empty_url_raises():
    with pytest.raises(AdapterConfigurationError):
        ConnectionConfig(url="")


def test_negative_timeout_raises():
    with pytest.raises(AdapterConfigurationError):
        ConnectionConfig(url="sqlite:///:memory:", timeout=-1)
