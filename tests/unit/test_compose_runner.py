"""
Unit tests for the compose command runner.
"""
import subprocess
from unittest.mock import MagicMock, patch
import pytest
from t2c.RUNNERS.compose_runner import ComposeCommandError, ComposeRunner


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def runner(tmp_path):
    return ComposeRunner(str(tmp_path), project_name="demo", timeout=5, ps_attempts=3, ps_wait=0)


class TestComposeRunner:
    """Tests for ComposeRunner."""

    def test_builds_command(self, runner, tmp_path):
        with patch("t2c.RUNNERS.compose_runner.subprocess.run", return_value=completed()) as run:
            runner.up()
        args, kwargs = run.call_args
        assert args[0] == ["docker", "compose", "-p", "demo", "-f", "docker-compose.yml", "up", "-d"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["shell"] is False
        assert kwargs["timeout"] == 5

    def test_custom_compose_command(self, tmp_path):
        runner = ComposeRunner(str(tmp_path), compose_command="docker-compose")
        with patch("t2c.RUNNERS.compose_runner.subprocess.run", return_value=completed()) as run:
            runner.down()
        assert run.call_args[0][0][:2] == ["docker-compose", "-p"]
        assert run.call_args[0][0][-1] == "down"

    def test_non_zero_exit(self, runner):
        with patch("t2c.RUNNERS.compose_runner.subprocess.run", return_value=completed(1, stderr="no such image")):
            with pytest.raises(ComposeCommandError) as exc:
                runner.up()
        assert "no such image" in str(exc.value)

    def test_launch_failure(self, runner):
        with patch("t2c.RUNNERS.compose_runner.subprocess.run", side_effect=FileNotFoundError("docker")):
            with pytest.raises(ComposeCommandError) as exc:
                runner.up()
        assert "failed to launch" in str(exc.value)

    def test_timeout(self, runner):
        with patch("t2c.RUNNERS.compose_runner.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="docker", timeout=5)):
            with pytest.raises(ComposeCommandError) as exc:
                runner.up()
        assert "timed out" in str(exc.value)

    def test_ps_retries_until_ready(self, runner):
        outputs = [completed(1, stderr="not ready"), completed(stdout='{"Service": "cache-c", "Status": "Up"}\n')]
        with patch("t2c.RUNNERS.compose_runner.subprocess.run", side_effect=outputs) as run:
            services = runner.ps()
        assert run.call_count == 2
        assert [s.name for s in services] == ["cache-c"]

    def test_ps_gives_up(self, runner):
        run = MagicMock(return_value=completed(1, stderr="down"))
        with patch("t2c.RUNNERS.compose_runner.subprocess.run", run):
            with pytest.raises(ComposeCommandError):
                runner.ps()
        assert run.call_count == 3


class TestParsePsOutput:
    """Tests for ps output parsing."""

    def test_json_lines(self):
        output = (
            '{"Service": "load-balancer-1", "Status": "Up 2 seconds", "Ports": "0.0.0.0:8080->80/tcp"}\n'
            '{"Service": "app-server-2", "Status": "Up 2 seconds", "Ports": ""}\n'
        )
        services = ComposeRunner.parse_ps_output(output)
        assert [s.name for s in services] == ["load-balancer-1", "app-server-2"]
        assert services[0].ports == ["0.0.0.0:8080->80/tcp"]
        assert services[1].ports == []

    def test_json_array_with_publishers(self):
        output = '[{"Name": "t2c-cache-c-1", "State": "running", "Publishers": [{"PublishedPort": 6379, "TargetPort": 6379}, {"PublishedPort": 0, "TargetPort": 1}]}]'
        services = ComposeRunner.parse_ps_output(output)
        assert services[0].name == "t2c-cache-c-1"
        assert services[0].status == "running"
        assert services[0].ports == ["6379:6379"]

    def test_empty(self):
        assert ComposeRunner.parse_ps_output("  \n") == []

    def test_garbage(self):
        with pytest.raises(ValueError):
            ComposeRunner.parse_ps_output("not json")
