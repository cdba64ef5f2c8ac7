import importlib

from enigma.config.models import ReputationConfig


def load_settings():
    settings_module = importlib.import_module("enigma.config.settings")
    importlib.reload(settings_module)
    return settings_module.Settings(_env_file=None)


def test_settings_loads(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "localhost:6380/1")
    monkeypatch.setenv("IPQUALITYSCORE_API_KEY", "ipqs-key")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("REPUTATION__CACHE_TTL_SECONDS", "120")

    s = load_settings()
    assert s.redis_url == "redis://localhost:6380/1"
    assert s.reputation_api_key == "ipqs-key"
    assert s.PORT == 8080
    assert s.reputation.cache_ttl_seconds == 120
    assert s.reputation_check_enabled is True


def test_placeholder_api_key_is_treated_as_missing(monkeypatch):
    monkeypatch.setenv("IPQUALITYSCORE_API_KEY", "your_api_key_here")

    s = load_settings()
    assert s.reputation_api_key is None


def test_legacy_switch_overrides_feature_flag(monkeypatch):
    monkeypatch.setenv("FEATURE_FLAGS__ENABLE_REPUTATION_CHECK", "true")
    monkeypatch.setenv("VPN_DETECTION_ENABLED", "false")

    s = load_settings()
    assert s.feature_flags.enable_reputation_check is True
    assert s.reputation_check_enabled is False


def test_trusted_networks_accept_comma_separated_string():
    config = ReputationConfig(trusted_networks="127.0.0.0/8, 10.0.0.0/8,,")

    assert config.trusted_networks == ["127.0.0.0/8", "10.0.0.0/8"]


def test_trusted_proxies_default_to_empty():
    assert ReputationConfig().trusted_proxies == []
    assert ReputationConfig(trusted_proxies="10.0.0.5").trusted_proxies == ["10.0.0.5"]
