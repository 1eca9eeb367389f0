from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_ALLOWED_FILE_TYPES = ["image/png", "image/jpeg", "image/gif", "image/webp"]


class ServerConfig(BaseModel):
    """HTTP and event-feed server settings."""

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class RunnerConfig(BaseModel):
    """Step pipeline settings."""

    step_delay: float = 0.0
    allowed_file_types: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_FILE_TYPES)
    )


class StreamConfig(BaseModel):
    """Client-side event-feed subscriber settings."""

    url: str = "ws://127.0.0.1:8080/ws"
    base_delay: float = 1.0
    max_attempts: int = 5
    connect_timeout: float = 10.0
    transport: Literal["websocket", "inmemory"] = "websocket"


class NarrationConfig(BaseModel):
    """Optional LLM narration of step outcomes."""

    model: Optional[str] = None
    temperature: float = 0.1


class StepsOSConfig(BaseModel):
    """Top-level configuration model."""

    server: ServerConfig = ServerConfig()
    runner: RunnerConfig = RunnerConfig()
    stream: StreamConfig = StreamConfig()
    narration: NarrationConfig = NarrationConfig()


def load_config(path: Optional[str] = None) -> StepsOSConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to STEPSOS_CONFIG env
            variable or 'stepsos.yaml' in the current directory.
    """

    config_path = path or os.getenv("STEPSOS_CONFIG", "stepsos.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = StepsOSConfig(**data)
    else:
        config = StepsOSConfig()

    env_port = os.getenv("STEPSOS_PORT")
    if env_port:
        config.server.port = int(env_port)
    env_stream_url = os.getenv("STEPSOS_STREAM_URL")
    if env_stream_url:
        config.stream.url = env_stream_url
    env_model = os.getenv("STEPSOS_NARRATION_MODEL")
    if env_model:
        config.narration.model = env_model
    return config
