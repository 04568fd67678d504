from pathlib import Path

from reportdesk.config.settings import Settings
from reportdesk.database.base import StateBackend
from reportdesk.database.connection import init_pool
from reportdesk.database.file_backend import JsonFileStateBackend
from reportdesk.database.postgres_backend import PostgresStateBackend


class StateBackendFactory:
    """Creates the configured state backend."""

    BACKENDS = ("file", "postgres")

    @classmethod
    def create(cls, settings: Settings) -> StateBackend:
        backend = settings.state_backend.lower()
        if backend == "file":
            return JsonFileStateBackend(Path(settings.state_file))
        if backend == "postgres":
            init_pool(settings)
            postgres = PostgresStateBackend()
            postgres.ensure_schema()
            return postgres
        raise ValueError(
            f"Unknown state backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
