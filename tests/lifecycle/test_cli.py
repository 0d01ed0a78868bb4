"""
Tests for the command-line runner.
"""

import logging

import pytest

from lifecycle.cli import build_config, create_parser, main, validate_args


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestArguments:

    def test_overrides_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STRESS_STORAGE_BACKEND", "sql")
        args = create_parser().parse_args([
            "--storage-backend", "json",
            "--data-dir", str(tmp_path),
            "--log-format", "json",
        ])

        config = build_config(args)

        assert config.storage.backend == "json"
        assert config.storage.data_dir == str(tmp_path)
        assert config.log_format == "json"
        assert config.chain.backend == "simulated"

    def test_invalid_run_arguments(self):
        args = create_parser().parse_args(["--demo-workers", "-1", "--duration", "0"])
        assert len(validate_args(args)) == 2

    def test_main_rejects_bad_arguments(self, tmp_path):
        assert main(["--duration", "-5", "--data-dir", str(tmp_path)]) == 1


class TestRun:

    def test_demo_run(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STRESS_MIN_DELAY_MS", "1")
        monkeypatch.setenv("STRESS_MAX_DELAY_MS", "5")

        exit_code = main([
            "--duration", "0.2",
            "--demo-workers", "3",
            "--data-dir", str(tmp_path),
            "--log-level", "WARNING",
        ])

        assert exit_code == 0
        assert (tmp_path / "workers.json").exists()
        assert (tmp_path / "pools.json").exists()
