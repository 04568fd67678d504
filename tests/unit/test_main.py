import json
from dataclasses import replace
from pathlib import Path

import pytest

from reportdesk.config.app_config import APP_CONFIG_KEY
from reportdesk.config.settings import Settings
from reportdesk.history.models import JobRecord, JobStatus, JobType
from reportdesk.main import _apply_overrides, build_parser, build_runtime, main
from reportdesk.reports.client import ReportClient
from reportdesk.reports.simulated_client import SimulatedReportClient


@pytest.fixture()
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the CLI against a state file in tmp_path with quiet logging."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STATE_FILE", str(tmp_path / "state.json"))
    monkeypatch.setenv("LOG_LEVEL", "CRITICAL")
    return tmp_path / "state.json"


class TestBuildParser:
    def test_sales_accepts_range(self) -> None:
        args = build_parser().parse_args(["sales", "--start", "2024-03-01", "--end", "2024-03-05"])
        assert (args.command, args.start, args.end, args.wait) == (
            "sales",
            "2024-03-01",
            "2024-03-05",
            True,
        )

    def test_no_wait_flag(self) -> None:
        args = build_parser().parse_args(["stock", "--no-wait"])
        assert args.wait is False

    def test_config_defaults_to_show(self) -> None:
        args = build_parser().parse_args(["config"])
        assert args.action == "show"
        assert args.values == []

    def test_clear_requires_known_type(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["clear", "returns"])


class TestApplyOverrides:
    def test_sets_string_and_flag_fields(self, app_config) -> None:
        config = _apply_overrides(app_config, ["warehouse_id=wh-7", "simulation_mode=true"])
        assert config == replace(app_config, warehouse_id="wh-7", simulation_mode=True)

    def test_rejects_unknown_key(self, app_config) -> None:
        with pytest.raises(ValueError, match="colour=red"):
            _apply_overrides(app_config, ["colour=red"])

    def test_rejects_missing_separator(self, app_config) -> None:
        with pytest.raises(ValueError):
            _apply_overrides(app_config, ["warehouse_id"])


class TestBuildRuntime:
    @pytest.mark.asyncio
    async def test_wires_http_client_by_default(self, memory_backend) -> None:
        runtime = build_runtime(Settings(), backend=memory_backend)
        try:
            assert isinstance(runtime.client, ReportClient)
            assert runtime.config.base_url == "https://api.easyecom.io"
        finally:
            await runtime.aclose()

    @pytest.mark.asyncio
    async def test_stored_config_enables_simulation(self, memory_backend) -> None:
        memory_backend.data[APP_CONFIG_KEY] = {"simulationMode": True}

        runtime = build_runtime(Settings(), backend=memory_backend)
        try:
            assert isinstance(runtime.client, SimulatedReportClient)
        finally:
            await runtime.aclose()


class TestMain:
    def test_status_prints_both_partitions(self, isolated_env: Path, capsys) -> None:
        assert main(["status"]) == 0
        assert json.loads(capsys.readouterr().out) == {"stock": [], "sales": []}

    def test_status_reads_persisted_history(self, isolated_env: Path, capsys) -> None:
        record = JobRecord(
            id=1,
            report_id="R-1",
            job_type=JobType.STOCK,
            created_at="now",
            status=JobStatus.READY,
            download_url="https://f/r.zip",
        )
        isolated_env.write_text(
            json.dumps({"stockHistory": [record.to_dict()]}), encoding="utf-8"
        )

        assert main(["status", "--type", "stock"]) == 0
        assert json.loads(capsys.readouterr().out) == {"stock": [record.to_dict()]}

    def test_invalid_sales_range_exits_with_error(self, isolated_env: Path, capsys) -> None:
        code = main(["sales", "--start", "2024-03-05", "--end", "2024-03-01"])

        assert code == 1
        assert "End date cannot be before start date." in capsys.readouterr().err
        assert not isolated_env.exists()

    def test_config_set_persists(self, isolated_env: Path, capsys) -> None:
        assert main(["config", "set", "warehouse_id=wh-42"]) == 0

        stored = json.loads(isolated_env.read_text(encoding="utf-8"))
        assert stored[APP_CONFIG_KEY]["warehouseId"] == "wh-42"
        assert json.loads(capsys.readouterr().out)["warehouseId"] == "wh-42"

    def test_clear_empties_partition(self, isolated_env: Path, capsys) -> None:
        record = JobRecord(id=1, report_id="R", job_type=JobType.SALES, created_at="now")
        isolated_env.write_text(
            json.dumps({"salesHistory": [record.to_dict()]}), encoding="utf-8"
        )

        assert main(["clear", "sales"]) == 0
        assert json.loads(isolated_env.read_text(encoding="utf-8"))["salesHistory"] == []

    def test_corrupt_state_file_exits_with_error(self, isolated_env: Path, capsys) -> None:
        isolated_env.write_text("{broken", encoding="utf-8")

        assert main(["status"]) == 1
        assert "not valid JSON" in capsys.readouterr().err

    def test_simulated_stock_flow_ends_ready(
        self, isolated_env: Path, capsys, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SIMULATION_MODE", "true")
        monkeypatch.setenv("POLL_INTERVAL_SECONDS", "0.01")
        monkeypatch.setattr(
            "reportdesk.reports.factory.SimulatedReportClient",
            lambda: SimulatedReportClient(submit_delay_seconds=0, status_delay_seconds=0),
        )

        assert main(["stock"]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["status"] == "Ready"
        assert printed["downloadUrl"] == "#"
        assert printed["reportId"].startswith("SIM-STK-")
