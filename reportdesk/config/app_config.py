from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from reportdesk.config.settings import Settings
from reportdesk.database.base import StateBackend
from reportdesk.logging.logger import Log

APP_CONFIG_KEY = "appConfig"

# Persisted blob keys, kept in the camelCase layout the dashboard has always stored.
_WIRE_KEYS = {
    "base_url": "easyEcomBaseUrl",
    "auth_token": "easyEcomJwt",
    "api_key": "easyEcomApiKey",
    "warehouse_id": "warehouseId",
    "relay_url": "backendUrl",
    "simulation_mode": "simulationMode",
}


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for talking to the report API and the relay."""

    base_url: str
    auth_token: str
    api_key: str
    warehouse_id: str
    relay_url: str
    simulation_mode: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppConfig":
        """Compiled-in defaults, optionally overridden by environment."""
        return cls(
            base_url=settings.easyecom_base_url,
            auth_token=settings.easyecom_jwt,
            api_key=settings.easyecom_api_key,
            warehouse_id=settings.easyecom_warehouse_id,
            relay_url=settings.backend_url,
            simulation_mode=settings.simulation_mode,
        )

    def to_dict(self) -> dict[str, Any]:
        return {_WIRE_KEYS[name]: value for name, value in asdict(self).items()}

    def merged_with(self, stored: dict[str, Any]) -> "AppConfig":
        """Overlay stored values on top of this config; absent keys keep their value."""
        overrides: dict[str, Any] = {}
        for f in fields(self):
            wire_key = _WIRE_KEYS[f.name]
            if wire_key not in stored:
                continue
            value = stored[wire_key]
            if f.name == "simulation_mode":
                value = bool(value)
            elif value is None:
                continue
            else:
                value = str(value)
            overrides[f.name] = value
        return replace(self, **overrides)


class ConfigRepository:
    """Loads and persists the 'app config' record."""

    def __init__(self, backend: StateBackend, defaults: AppConfig) -> None:
        self._backend = backend
        self._defaults = defaults

    def load(self) -> AppConfig:
        """Return defaults merged with whatever was persisted."""
        stored = self._backend.load(APP_CONFIG_KEY)
        if stored is None:
            return self._defaults
        if not isinstance(stored, dict):
            Log.warning("Ignoring malformed persisted app config")
            return self._defaults
        return self._defaults.merged_with(stored)

    def update(self, config: AppConfig) -> AppConfig:
        """Persist the full config record and return it."""
        self._backend.save(APP_CONFIG_KEY, config.to_dict())
        Log.info(f"Saved app config (simulation_mode={config.simulation_mode})")
        return config

    def reset(self) -> AppConfig:
        """Drop the persisted record, falling back to defaults."""
        self._backend.delete(APP_CONFIG_KEY)
        return self._defaults
