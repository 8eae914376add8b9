"""Tests for CLI entry point.

Verifies that the lightweight CLI commands work correctly.
"""
from __future__ import annotations

import subprocess
import sys


def _run_cli(*args: str, cwd=None) -> subprocess.CompletedProcess:
    """Run the CLI with the given arguments."""
    return subprocess.run(
        [sys.executable, "-m", "trophic_nfd", *args],
        capture_output=True, text=True, timeout=120, cwd=cwd,
    )


class TestCLI:
    """Test CLI commands."""

    def test_version(self):
        result = _run_cli("version")
        assert result.returncode == 0
        assert "trophic-nfd" in result.stdout
        assert "0.1.0" in result.stdout

    def test_help(self):
        result = _run_cli("help")
        assert result.returncode == 0
        assert "synthetic" in result.stdout
        assert "empirical" in result.stdout
        assert "figures" in result.stdout

    def test_no_args(self):
        result = _run_cli()
        assert result.returncode == 0
        assert "Usage:" in result.stdout

    def test_unknown_command(self):
        result = _run_cli("nonexistent")
        assert result.returncode == 1
        assert "Unknown command" in result.stdout

    def test_version_flag(self):
        result = _run_cli("--version")
        assert result.returncode == 0
        assert "0.1.0" in result.stdout

    def test_figures_without_results(self, tmp_path):
        result = _run_cli("figures", cwd=tmp_path)
        assert result.returncode == 1
        assert "No stored results" in result.stdout
