import pytest

from src.webhook_delivery.config import DeliveryConfig


@pytest.mark.unit
def test_defaults():
    config = DeliveryConfig()
    assert config.timeout_ms == 8000
    assert config.max_retries == 8
    assert config.base_backoff_ms == 1000
    assert config.max_backoff_ms == 60000
    assert config.poll_interval_ms == 3000
    assert config.fast_log_size == 50
    assert config.last_payload_ttl_seconds == 86400
    assert config.header_prefix == "X-Vikareta"
    assert config.timeout_seconds == 8.0
    assert config.poll_interval_seconds == 3.0


@pytest.mark.unit
def test_from_env_overrides_only_set_values():
    config = DeliveryConfig.from_env({
        "WEBHOOK_TIMEOUT_MS": "500",
        "WEBHOOK_MAX_RETRIES": "3",
        "WEBHOOK_HEADER_PREFIX": "X-Acme",
        "WEBHOOK_FAST_LOG_SIZE": "",
    })
    assert config.timeout_ms == 500
    assert config.max_retries == 3
    assert config.header_prefix == "X-Acme"
    assert config.fast_log_size == 50


@pytest.mark.unit
def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("WEBHOOK_POLL_INTERVAL_MS", "250")
    assert DeliveryConfig.from_env().poll_interval_ms == 250


@pytest.mark.unit
def test_from_env_rejects_non_integer():
    with pytest.raises(ValueError, match="WEBHOOK_MAX_RETRIES"):
        DeliveryConfig.from_env({"WEBHOOK_MAX_RETRIES": "many"})


@pytest.mark.unit
@pytest.mark.parametrize("field", ["timeout_ms", "max_retries", "fast_log_size"])
def test_non_positive_values_rejected(field):
    with pytest.raises(ValueError, match=field):
        DeliveryConfig(**{field: 0})


@pytest.mark.unit
def test_config_is_immutable():
    config = DeliveryConfig()
    with pytest.raises(AttributeError):
        config.max_retries = 3
