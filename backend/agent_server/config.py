"""
Agent Server Configuration

Process settings loaded from environment variables (and an optional .env
file), with defaults. The agent query options are not here: clients post
those at runtime through /config.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

SERVER_PORT = 3000
WORKSPACE_DIR_NAME = "agent-workspace"
SANDBOX_TEMPLATE = "claude-agent-server"


def default_workspace_dir() -> str:
    return os.path.join(os.path.expanduser("~"), WORKSPACE_DIR_NAME)


@dataclass
class ServerConfig:
    """Relay server configuration"""

    host: str = "0.0.0.0"
    port: int = SERVER_PORT
    workspace_dir: str = ""

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    log_to_file: bool = True

    def __post_init__(self):
        if not self.workspace_dir:
            self.workspace_dir = default_workspace_dir()

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ServerConfig":
        """Load configuration from environment variables"""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls(
            host=os.getenv("AGENT_SERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("AGENT_SERVER_PORT", str(SERVER_PORT))),
            workspace_dir=os.getenv("AGENT_SERVER_WORKSPACE", default_workspace_dir()),
            log_level=os.getenv("AGENT_SERVER_LOG_LEVEL", "INFO"),
            log_dir=os.getenv("AGENT_SERVER_LOG_DIR") or None,
            log_to_file=os.getenv("AGENT_SERVER_LOG_TO_FILE", "true").lower() == "true",
        )

    def validate(self) -> None:
        """Validate configuration on startup (fail fast if invalid)"""
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")

        if not self.workspace_dir:
            raise ValueError("workspace_dir is required")

        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {self.log_level}")
