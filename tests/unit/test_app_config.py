from dataclasses import replace

from reportdesk.config.app_config import APP_CONFIG_KEY, AppConfig, ConfigRepository
from reportdesk.config.settings import Settings


class TestFromSettings:
    def test_maps_environment_settings(self, monkeypatch) -> None:
        monkeypatch.setenv("EASYECOM_BASE_URL", "https://api.env.test")
        monkeypatch.setenv("EASYECOM_JWT", "jwt")
        monkeypatch.setenv("EASYECOM_API_KEY", "key")
        monkeypatch.setenv("EASYECOM_WAREHOUSE_ID", "wh")
        monkeypatch.setenv("BACKEND_URL", "http://relay.env")
        monkeypatch.setenv("SIMULATION_MODE", "true")

        config = AppConfig.from_settings(Settings())

        assert config == AppConfig(
            base_url="https://api.env.test",
            auth_token="jwt",
            api_key="key",
            warehouse_id="wh",
            relay_url="http://relay.env",
            simulation_mode=True,
        )


class TestConfigRepository:
    def test_load_returns_defaults_when_nothing_stored(self, memory_backend, app_config) -> None:
        repo = ConfigRepository(memory_backend, app_config)
        assert repo.load() == app_config

    def test_stored_values_override_defaults(self, memory_backend, app_config) -> None:
        memory_backend.data[APP_CONFIG_KEY] = {"warehouseId": "wh-9", "simulationMode": True}

        config = ConfigRepository(memory_backend, app_config).load()

        assert config.warehouse_id == "wh-9"
        assert config.simulation_mode is True
        assert config.base_url == app_config.base_url

    def test_malformed_record_falls_back_to_defaults(self, memory_backend, app_config) -> None:
        memory_backend.data[APP_CONFIG_KEY] = ["not", "a", "dict"]

        assert ConfigRepository(memory_backend, app_config).load() == app_config

    def test_update_persists_full_record(self, memory_backend, app_config) -> None:
        repo = ConfigRepository(memory_backend, app_config)
        changed = replace(app_config, api_key="new-key")

        repo.update(changed)

        assert memory_backend.data[APP_CONFIG_KEY] == {
            "easyEcomBaseUrl": "https://api.example.test",
            "easyEcomJwt": "jwt-token",
            "easyEcomApiKey": "new-key",
            "warehouseId": "wh-1",
            "backendUrl": "http://relay.test",
            "simulationMode": False,
        }
        assert repo.load().api_key == "new-key"

    def test_reset_drops_stored_record(self, memory_backend, app_config) -> None:
        memory_backend.data[APP_CONFIG_KEY] = {"warehouseId": "other"}
        repo = ConfigRepository(memory_backend, app_config)

        assert repo.reset() == app_config
        assert APP_CONFIG_KEY not in memory_backend.data
