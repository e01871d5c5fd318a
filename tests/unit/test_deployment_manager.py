"""
Unit tests for the deployment manager.
"""
import os
import threading
from unittest.mock import MagicMock
import pytest
from t2c.COMPILERS.descriptor_compiler import compile_topology
from t2c.MANAGERS.deployment_manager import DeploymentError, DeploymentManager
from t2c.MODELS.deployment_descriptor import DeploymentDescriptor, ServiceSpec
from t2c.MODELS.deployment_status import DeploymentState, ServiceStatus
from t2c.MODELS.topology import Topology
from t2c.RUNNERS.compose_runner import ComposeCommandError, ComposeRunner
from t2c.UTILS.settings import Settings

DESCRIPTOR = compile_topology(Topology.model_validate({
    "nodes": [
        {"id": "1", "type": "load-balancer", "config": {"port": 8080}},
        {"id": "2", "type": "app-server", "config": {"port": 3000}},
    ],
    "edges": [{"id": "e1-2", "source": "1", "target": "2"}],
}))

SERVICES = [
    ServiceStatus(name="load-balancer-1", status="Up", ports=["0.0.0.0:8080->80/tcp"]),
    ServiceStatus(name="app-server-2", status="Up"),
]


@pytest.fixture
def runner():
    runner = MagicMock(spec=ComposeRunner)
    runner.ps.return_value = SERVICES
    return runner


@pytest.fixture
def manager(tmp_path, runner):
    return DeploymentManager(str(tmp_path), runner=runner)


class TestDeploymentManager:
    """Tests for DeploymentManager."""

    def test_starts_idle(self, manager):
        assert manager.current_status().state == DeploymentState.IDLE

    def test_apply(self, manager, runner, tmp_path):
        status = manager.apply(DESCRIPTOR)
        assert status.state == DeploymentState.RUNNING
        assert status.services == SERVICES
        assert manager.current_status() == status

        runner.run.assert_called_once_with("down", "--remove-orphans")
        runner.up.assert_called_once()
        assert os.path.exists(tmp_path / "docker-compose.yml")
        assert os.path.exists(tmp_path / "nginx-1.conf")

    def test_apply_ignores_failed_teardown(self, manager, runner):
        runner.run.side_effect = ComposeCommandError(["docker"], "nothing to stop")
        assert manager.apply(DESCRIPTOR).state == DeploymentState.RUNNING

    def test_apply_failure_leaves_error_status(self, manager, runner):
        runner.up.side_effect = ComposeCommandError(["docker", "compose", "up"], "image not found")
        with pytest.raises(DeploymentError) as exc:
            manager.apply(DESCRIPTOR)
        assert "image not found" in str(exc.value)
        status = manager.current_status()
        assert status.state == DeploymentState.ERROR
        assert "image not found" in status.message
        assert status.services == []

    def test_retry_after_failure(self, manager, runner):
        runner.up.side_effect = [ComposeCommandError(["up"], "boom"), None]
        with pytest.raises(DeploymentError):
            manager.apply(DESCRIPTOR)
        assert manager.apply(DESCRIPTOR).state == DeploymentState.RUNNING

    def test_cyclic_descriptor_is_rejected(self, manager, runner):
        cyclic = DeploymentDescriptor(services={
            "a": ServiceSpec(image="x", depends_on=["b"]),
            "b": ServiceSpec(image="x", depends_on=["a"]),
        })
        with pytest.raises(DeploymentError):
            manager.apply(cyclic)
        runner.up.assert_not_called()
        assert manager.current_status().state == DeploymentState.ERROR

    def test_stop(self, manager, runner):
        manager.apply(DESCRIPTOR)
        status = manager.stop()
        assert status.state == DeploymentState.IDLE
        assert status.message == "Deployment stopped"
        runner.down.assert_called_once()

    def test_stop_failure(self, manager, runner):
        runner.down.side_effect = ComposeCommandError(["down"], "daemon unavailable")
        with pytest.raises(DeploymentError):
            manager.stop()
        assert manager.current_status().state == DeploymentState.ERROR

    def test_status_readable_while_deploying(self, manager, runner):
        started = threading.Event()
        release = threading.Event()

        def slow_up():
            started.set()
            release.wait(5)

        runner.up.side_effect = slow_up
        worker = threading.Thread(target=manager.apply, args=(DESCRIPTOR,))
        worker.start()
        try:
            assert started.wait(5)
            assert manager.current_status().state == DeploymentState.DEPLOYING
        finally:
            release.set()
            worker.join(5)
        assert manager.current_status().state == DeploymentState.RUNNING

    def test_stop_waits_for_deploy(self, manager, runner):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_up():
            started.set()
            release.wait(5)
            calls.append("up")

        runner.up.side_effect = slow_up
        runner.down.side_effect = lambda: calls.append("down")

        deployer = threading.Thread(target=manager.apply, args=(DESCRIPTOR,))
        deployer.start()
        assert started.wait(5)
        stopper = threading.Thread(target=manager.stop)
        stopper.start()
        stopper.join(0.2)
        assert calls == []
        release.set()
        deployer.join(5)
        stopper.join(5)
        assert calls == ["up", "down"]
        assert manager.current_status().state == DeploymentState.IDLE

    def test_refresh_without_deployment(self, manager, runner):
        assert manager.refresh().state == DeploymentState.IDLE
        runner.ps.assert_not_called()

    def test_refresh_reports_running_services(self, manager, runner, tmp_path):
        (tmp_path / "docker-compose.yml").write_text("services: {}\n")
        status = manager.refresh()
        assert status.state == DeploymentState.RUNNING
        assert [s.name for s in status.services] == ["load-balancer-1", "app-server-2"]

    def test_from_settings(self, tmp_path):
        settings = Settings(work_dir=str(tmp_path / "work"), compose_command="podman compose", project_name="p")
        manager = DeploymentManager.from_settings(settings)
        assert manager.work_dir == str(tmp_path / "work")
        assert manager.runner.compose_command == ["podman", "compose"]
        assert manager.runner.project_name == "p"
