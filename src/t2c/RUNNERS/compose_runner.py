# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Execution of `docker compose` commands against a rendered compose file.
"""
import json
import logging
import shlex
import subprocess
from typing import Any, Dict, List, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..MODELS.deployment_status import ServiceStatus

logger = logging.getLogger(__name__)

COMPOSE_FILENAME = "docker-compose.yml"


class ComposeCommandError(Exception):
    """
    Raised when a compose command cannot be launched, times out, or exits non-zero.
    """
    def __init__(self, command: List[str], message: str):
        self.command = command
        super().__init__(f"{' '.join(command)}: {message}")


class ComposeRunner:
    """
    Runs compose sub-commands for one project in a working directory.
    """
    def __init__(self,
                 work_dir: str,
                 compose_command: str = "docker compose",
                 project_name: str = "t2c",
                 timeout: float = 300.0,
                 ps_attempts: int = 5,
                 ps_wait: float = 1.0):
        """
        Initializes the runner.

        Args:
            work_dir (str): Directory holding the compose file.
            compose_command (str): Orchestrator command prefix, e.g. 'docker compose'.
            project_name (str): Compose project name.
            timeout (float): Seconds allowed per command.
            ps_attempts (int): Attempts made to read service status.
            ps_wait (float): Seconds between status attempts.
        """
        self.work_dir = work_dir
        self.compose_command = shlex.split(compose_command)
        self.project_name = project_name
        self.timeout = timeout
        self.ps_attempts = ps_attempts
        self.ps_wait = ps_wait

    def _command(self, *args: str) -> List[str]:
        return self.compose_command + ["-p", self.project_name, "-f", COMPOSE_FILENAME, *args]

    def run(self, *args: str) -> str:
        """
        Runs a compose sub-command and returns its standard output.

        Args:
            *args: Sub-command and its arguments, e.g. 'up', '-d'.

        Returns:
            str: Captured standard output.

        Raises:
            ComposeCommandError: If the command fails for any reason.
        """
        command = self._command(*args)
        logger.info("Running %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                cwd=self.work_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                # Avoid shell=True for security reasons (CWE-78)
                shell=False,
            )
        except subprocess.TimeoutExpired:
            raise ComposeCommandError(command, f"timed out after {self.timeout:g}s")
        except OSError as e:
            raise ComposeCommandError(command, f"failed to launch: {e}")

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise ComposeCommandError(command, f"exited with {completed.returncode}: {detail}")
        return completed.stdout

    def up(self):
        self.run("up", "-d")

    def down(self):
        self.run("down")

    def ps(self) -> List[ServiceStatus]:
        """
        Reads the status of the project's services, retrying while the
        orchestrator is not ready to report.

        Returns:
            List[ServiceStatus]: One entry per service container.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.ps_attempts),
            wait=wait_fixed(self.ps_wait),
            retry=retry_if_exception_type((ComposeCommandError, ValueError)),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self.parse_ps_output(self.run("ps", "--format", "json"))
        return []

    @staticmethod
    def parse_ps_output(output: str) -> List[ServiceStatus]:
        """
        Parses `ps --format json` output. Older compose releases print a JSON
        array, newer ones one JSON object per line.

        Args:
            output (str): Raw command output.

        Returns:
            List[ServiceStatus]: Parsed service statuses.

        Raises:
            ValueError: If the output is not valid JSON.
        """
        output = output.strip()
        if not output:
            return []
        if output.startswith("["):
            entries = json.loads(output)
        else:
            entries = [json.loads(line) for line in output.splitlines() if line.strip()]
        return [ComposeRunner._to_status(entry) for entry in entries]

    @staticmethod
    def _to_status(entry: Dict[str, Any]) -> ServiceStatus:
        ports = _split_ports(entry.get("Ports"))
        if not ports:
            ports = [
                f"{p['PublishedPort']}:{p['TargetPort']}"
                for p in entry.get("Publishers") or []
                if p.get("PublishedPort")
            ]
        return ServiceStatus(
            name=entry.get("Service") or entry.get("Name", ""),
            status=entry.get("Status") or entry.get("State", ""),
            ports=ports,
        )


def _split_ports(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]
