"""Configuration for workflow checkpoint persistence.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

`PROJECT_PATH` is the single path-valued override that decides where the hidden
well-known directory lives when no explicit project path is passed in code.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

WorkflowEnvironment = Literal["production", "test"]


class WorkflowSettings(BaseSettings):
    """Settings for checkpoint persistence and orchestration.

    Environment variables:
    - WORKFLOW_ENVIRONMENT  (optional, "production" or "test")
    - PROJECT_PATH          (optional)
    - LOG_LEVEL             (optional)
    - WORKFLOW_LOG_TO_FILE  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `WorkflowSettings(_env_file=path_to_env)`.
    """

    environment: WorkflowEnvironment = Field(
        default="production",
        validation_alias="WORKFLOW_ENVIRONMENT",
        description="Selects in-memory (test) or file-backed (production) checkpointing",
    )

    project_path: Path | None = Field(
        default=None,
        validation_alias="PROJECT_PATH",
        description="Root under which the well-known directory is created",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    log_to_file: bool = Field(
        default=False,
        validation_alias="WORKFLOW_LOG_TO_FILE",
        description="Also append JSON log lines to the well-known logs file",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )
