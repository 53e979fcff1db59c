"""End-to-end integration tests for taskboard.

This module tests complete workflows using subprocess to run the CLI
as a real user would, ensuring all components work together correctly.
"""

import json
import os
import re
import subprocess
import sys
from datetime import timedelta
from pathlib import Path

import pytest

from taskboard.models import utc_now

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class TestIntegration:
    """E2E integration tests for the complete taskboard workflow."""

    @pytest.fixture(params=["json", "sqlite"])
    def backend_env(self, request, tmp_path):
        """Environment pointing the CLI at a fresh store."""
        env = {k: v for k, v in os.environ.items() if not k.startswith("TASK_")}
        env["TASK_BACKEND"] = request.param
        env["TASK_DB_PATH"] = str(tmp_path / f"tasks.{request.param}")
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
        return env

    def run_cli(self, args, env, check=True, stdin=None):
        """Run the CLI with given arguments.

        Args:
            args: List of command arguments
            env: Environment for the child process
            check: Whether to check for non-zero exit codes
            stdin: Optional text fed to standard input

        Returns:
            subprocess.CompletedProcess instance
        """
        result = subprocess.run(
            [sys.executable, "-m", "taskboard"] + args,
            capture_output=True,
            text=True,
            check=False,
            env=env,
            input=stdin,
            cwd=str(PROJECT_ROOT),
        )
        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, result.args, result.stdout, result.stderr
            )
        return result

    def add(self, env, title, days_due=2, *extra):
        due = (utc_now() + timedelta(days=days_due)).isoformat()
        result = self.run_cli(["add", title, "--due", due] + list(extra), env)
        match = re.search(r"Task added: #(\w+)", result.stdout)
        assert match, result.stdout
        return match.group(1)

    def test_complete_workflow(self, backend_env):
        """Test the main journey: add -> list -> done -> stats -> delete."""
        task_id = self.add(backend_env, "Buy groceries", 2, "--priority", "High")

        result = self.run_cli(["list"], backend_env)
        assert f"#{task_id} Buy groceries [High] (Incomplete)" in result.stdout

        result = self.run_cli(["stats"], backend_env)
        assert "Total tasks:     1" in result.stdout
        assert "Due in 7 days:   1" in result.stdout

        result = self.run_cli(["done", task_id], backend_env)
        assert f"Task #{task_id} marked as done" in result.stdout

        result = self.run_cli(["stats"], backend_env)
        assert "Completed:       1 (100% of total)" in result.stdout
        assert "Due in 7 days:   0" in result.stdout

        result = self.run_cli(["delete", task_id], backend_env)
        assert f"Task #{task_id} deleted." in result.stdout

        result = self.run_cli(["list"], backend_env)
        assert "No tasks found." in result.stdout

    def test_export_import_round_trip(self, backend_env, tmp_path):
        """Test that export then import restores ids and creation times."""
        self.add(backend_env, "First", 1)
        self.add(backend_env, "Second", 9, "--status", "In Progress")
        out = tmp_path / "export.json"

        self.run_cli(["export", "--out", str(out)], backend_env)
        exported = json.loads(out.read_text())
        assert len(exported) == 2

        self.run_cli(["clear", "--yes"], backend_env)
        self.add(backend_env, "Temporary")
        self.run_cli(["import", str(out)], backend_env)

        result = self.run_cli(["export", "--out", "-"], backend_env)
        restored = json.loads(result.stdout)
        key = lambda r: r["id"]
        assert sorted(restored, key=key) == sorted(exported, key=key)

    def test_import_rejects_bad_document(self, backend_env, tmp_path):
        self.add(backend_env, "Keep me")
        bad = tmp_path / "bad.json"
        bad.write_text('{"not": "an array"}')

        result = self.run_cli(["import", str(bad)], backend_env, check=False)
        assert result.returncode == 1
        assert "Error:" in result.stderr

        result = self.run_cli(["list"], backend_env)
        assert "Keep me" in result.stdout

    def test_clear_asks_for_confirmation(self, backend_env):
        self.add(backend_env, "Survivor")

        result = self.run_cli(["clear"], backend_env, stdin="n\n")
        assert "Aborted." in result.stdout
        assert "Survivor" in self.run_cli(["list"], backend_env).stdout

        result = self.run_cli(["clear"], backend_env, stdin="yes\n")
        assert "All tasks deleted." in result.stdout
        assert "No tasks found." in self.run_cli(["list"], backend_env).stdout

    def test_error_done_nonexistent_task(self, backend_env):
        """Test error handling when marking nonexistent task as done."""
        result = self.run_cli(["done", "nope"], backend_env, check=False)
        assert result.returncode == 1
        assert "Error: Task #nope not found." in result.stderr

    def test_add_missing_due_fails(self, backend_env):
        result = self.run_cli(["add", "No due"], backend_env, check=False)
        assert result.returncode == 2
        assert "--due" in result.stderr

    def test_verbose_logs_to_stderr(self, backend_env):
        result = self.run_cli(["-v", "add", "Logged", "--due", "2030-01-01"], backend_env)
        assert "INFO taskboard.repository: Created task" in result.stderr

    def test_no_command_shows_help(self, backend_env):
        """Test that running CLI with no command shows help."""
        result = self.run_cli([], backend_env, check=False)
        assert result.returncode == 1
        assert "usage:" in result.stdout
