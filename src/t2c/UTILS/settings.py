"""
Runtime settings read from the environment and an optional .env file.
"""
import os
from typing import Mapping, Optional
from dotenv import load_dotenv
from pydantic import BaseModel

ENV_PREFIX = "T2C_"


class Settings(BaseModel):
    """
    Settings for the orchestration adapter, the CLI and the request layer.
    """
    work_dir: str = ".t2c"
    compose_command: str = "docker compose"
    project_name: str = "t2c"
    command_timeout: float = 300.0
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 3000

    @classmethod
    def from_env(cls,
                 environ: Optional[Mapping[str, str]] = None,
                 env_file: Optional[str] = ".env") -> "Settings":
        """
        Builds settings from T2C_* variables.

        :param environ: Variables to read, defaults to the process environment.
        :param env_file: A .env file loaded into the process environment first,
                         without overriding variables that are already set.
        :return: The settings.
        """
        if env_file and os.path.exists(env_file):
            load_dotenv(env_file, override=False)
        source = os.environ if environ is None else environ

        values = {}
        for field in cls.model_fields:
            key = ENV_PREFIX + field.upper()
            if source.get(key):
                values[field] = source[key]
        return cls(**values)
