import copy
import io
import zipfile
from collections.abc import Callable
from typing import Any

import pytest

from reportdesk.config.app_config import AppConfig
from reportdesk.database.base import StateBackend
from reportdesk.database.exceptions import StateBackendError


class InMemoryStateBackend(StateBackend):
    """State backend double that keeps deep copies, so callers cannot alias stored state."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = copy.deepcopy(initial or {})
        self.saved_keys: list[str] = []
        # The next save_failures calls to save raise StateBackendError.
        self.save_failures = 0

    def load(self, key: str) -> Any | None:
        return copy.deepcopy(self.data.get(key))

    def save(self, key: str, value: Any) -> None:
        if self.save_failures:
            self.save_failures -= 1
            raise StateBackendError("disk full")
        self.data[key] = copy.deepcopy(value)
        self.saved_keys.append(key)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture()
def memory_backend() -> InMemoryStateBackend:
    return InMemoryStateBackend()


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        base_url="https://api.example.test",
        auth_token="jwt-token",
        api_key="api-key",
        warehouse_id="wh-1",
        relay_url="http://relay.test",
        simulation_mode=False,
    )


@pytest.fixture()
def make_zip() -> Callable[[dict[str, str | bytes]], bytes]:
    """Build an in-memory zip archive from {member name: content}."""

    def _make(members: dict[str, str | bytes]) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in members.items():
                archive.writestr(name, content)
        return buf.getvalue()

    return _make


@pytest.fixture()
def sales_csv() -> str:
    """A small mini-sales export with a cancellation, a return and a bad price."""
    return (
        "Suborder No,Order Date,Product Name,Item Quantity,Selling Price,Order Status,Shipping Status\n"
        "ppy-1001,2024-03-01 10:15:00,Tandoori Chaap,2,\"1,200.00\",Confirmed,DELIVERED\n"
        "ppy-1001,2024-03-01 10:15:00,Malai Chaap,1,300.00,Confirmed,DELIVERED\n"
        "ppy-1002,2024-03-02 09:00:00,Malai Chaap,3,900.00,CANCELLED,\n"
        "ppy-1003,2024-03-02 18:30:00,Achari Chaap,1,abc,Confirmed,picked up\n"
        "ppy-1004,2024-03-03 11:00:00,Tandoori Chaap,1,600.00,RETURNED,RTO\n"
        "\n"
        ",2024-03-03 12:00:00,Ghost Item,1,999.00,Confirmed,DELIVERED\n"
    )
