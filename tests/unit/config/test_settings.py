"""Test environment-driven settings."""

from kvquery.settings import OTELSettings, Settings


def test_defaults():
    """Test defaults without environment overrides."""
    config = Settings(_env_file=None)
    assert config.store_backend == "memory"
    assert config.primary_key_field == "id"
    assert config.otel.enabled is False


def test_environment_overrides(monkeypatch):
    """Test KVQUERY_ and OTEL__ prefixed variables are read."""
    monkeypatch.setenv("KVQUERY_STORE_BACKEND", "rocksdb")
    monkeypatch.setenv("KVQUERY_SCAN_BATCH_SIZE", "32")
    monkeypatch.setenv("OTEL__ENABLED", "true")

    config = Settings(_env_file=None)
    assert config.store_backend == "rocksdb"
    assert config.scan_batch_size == 32
    assert OTELSettings(_env_file=None).enabled is True
