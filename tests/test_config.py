import pytest
from pydantic import ValidationError

from inventory_service.config import Settings

_ENV_VARS = (
    "INVENTORY_ALLOW_NEGATIVE",
    "INVENTORY_CATALOG_SYNC",
    "KAFKA_GROUP_ID",
    "KAFKA_BOOTSTRAP_SERVERS",
    "INVENTORY_TOPIC_SALES",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = Settings()

        assert settings.allow_negative_stock is False
        assert settings.catalog_sync is False
        assert settings.kafka_group_id == "inventory-service"
        assert settings.log_level == "INFO"
        assert settings.topics == ("produtos", "lojas", "vendas", "ajustes_estoque")

    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", "on"])
    def test_truthy_flags(self, monkeypatch, raw):
        monkeypatch.setenv("INVENTORY_ALLOW_NEGATIVE", raw)
        assert Settings().allow_negative_stock is True

    @pytest.mark.parametrize("raw", ["0", "false", "no", "off"])
    def test_falsy_flags(self, monkeypatch, raw):
        monkeypatch.setenv("INVENTORY_ALLOW_NEGATIVE", raw)
        assert Settings().allow_negative_stock is False

    def test_empty_flag_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_CATALOG_SYNC", "")
        assert Settings().catalog_sync is False

    def test_garbage_flag_is_rejected(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_ALLOW_NEGATIVE", "maybe")
        with pytest.raises(ValidationError):
            Settings()

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_TOPIC_SALES", "sales-v2")
        monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:29092")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.topic_sales == "sales-v2"
        assert settings.kafka_bootstrap_servers == "kafka:29092"
        assert settings.log_level == "DEBUG"

    def test_field_names_work_as_keywords(self):
        assert Settings(allow_negative_stock=True).allow_negative_stock is True

    def test_settings_are_immutable(self):
        with pytest.raises(ValidationError):
            Settings().allow_negative_stock = True
