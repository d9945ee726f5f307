# tests/unit/test_main.py — v1
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest

from ridecoach.main import (
    EXIT_ERROR,
    EXIT_INSUFFICIENT_DATA,
    EXIT_INTERRUPTED,
    EXIT_OK,
    _build_parser,
    main,
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOCUMENT_ROOT", str(tmp_path / "docs"))
    monkeypatch.setenv("LOG_FORMAT", "text")
    monkeypatch.delenv("REMOTE_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("ARTIFACT_BACKEND", raising=False)
    yield
    root = logging.getLogger("ridecoach")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()


@pytest.fixture
def seeded_plan(tmp_path, plan_record):
    folder = tmp_path / "docs" / "eventPrepPlans"
    folder.mkdir(parents=True)
    record = {**plan_record, "userId": "u1", "isDeleted": False}
    (folder / "plan_001.json").write_text(json.dumps(record), encoding="utf-8")
    return record


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self, capsys):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_generate_subcommand(self):
        args = _build_parser().parse_args(
            ["generate", "plan_001", "--force", "--endpoint", "https://x.test"]
        )
        assert args.command == "generate"
        assert args.plan_id == "plan_001"
        assert args.force is True
        assert args.endpoint == "https://x.test"

    def test_generate_defaults(self):
        args = _build_parser().parse_args(["generate", "plan_001"])
        assert args.force is False
        assert args.endpoint is None

    def test_status_subcommand(self):
        args = _build_parser().parse_args(["status", "plan_001"])
        assert args.command == "status"
        assert args.plan_id == "plan_001"


# ---------------------------------------------------------------------------
# main()
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command(self, capsys):
        assert main([]) == EXIT_ERROR

    def test_configuration_error(self, monkeypatch, capsys):
        monkeypatch.setenv("ARTIFACT_BACKEND", "redis")
        assert main(["status", "plan_001"]) == EXIT_ERROR
        assert "Configuration error" in capsys.readouterr().err

    def test_generate_without_endpoint(self):
        assert main(["generate", "plan_001"]) == EXIT_ERROR

    def test_keyboard_interrupt(self):
        def _interrupt(coro):
            coro.close()
            raise KeyboardInterrupt

        with patch("ridecoach.main.asyncio.run", side_effect=_interrupt):
            assert main(["status", "plan_001"]) == EXIT_INTERRUPTED

    def test_status_without_plan(self, capsys):
        assert main(["status", "plan_001"]) == EXIT_ERROR
        assert "No generated plan" in capsys.readouterr().out


class TestGenerateCommand:
    def test_full_run(self, full_run_remote, seeded_plan, capsys):
        remote = full_run_remote()
        with patch(
            "ridecoach.remote.callable_remote.CallableRemoteGeneration", return_value=remote
        ):
            code = main(["generate", "plan_001", "--endpoint", "https://x.test"])
        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "== Test Requirements ==" in out
        assert "== Show-Day Guidance ==" in out
        assert "Plan complete" in out

    def test_insufficient_data(self, make_remote, capsys):
        remote = make_remote(
            {"success": False, "error": "insufficient_data", "message": "Add a horse profile"}
        )
        with patch(
            "ridecoach.remote.callable_remote.CallableRemoteGeneration", return_value=remote
        ):
            code = main(["generate", "plan_001", "--endpoint", "https://x.test"])
        assert code == EXIT_INSUFFICIENT_DATA
        assert "Add a horse profile" in capsys.readouterr().out

    def test_failed_step(self, make_remote, step_response, capsys):
        remote = make_remote(step_response(1), TimeoutError())
        with patch(
            "ridecoach.remote.callable_remote.CallableRemoteGeneration", return_value=remote
        ):
            code = main(["generate", "plan_001", "--endpoint", "https://x.test"])
        assert code == EXIT_ERROR
        assert "Step 2 failed" in capsys.readouterr().out

    def test_status_after_generate(self, full_run_remote, seeded_plan, capsys):
        with patch(
            "ridecoach.remote.callable_remote.CallableRemoteGeneration",
            return_value=full_run_remote(),
        ):
            assert main(["generate", "plan_001", "--endpoint", "https://x.test"]) == EXIT_OK
        capsys.readouterr()

        assert main(["status", "plan_001"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "Version:    1" in out
        assert "Stale:      no" in out
