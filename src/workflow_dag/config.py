"""Configuration for workflow graph building.

Settings are loaded from environment variables prefixed with `WORKFLOW_DAG_`
and from a local `.env` file (if present).
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_dag.logging import configure_logging


class DAGSettings(BaseSettings):
    """Settings for building and editing workflow graphs.

    Environment variables:
    - WORKFLOW_DAG_LOG_LEVEL                    (optional)
    - WORKFLOW_DAG_LOG_FORMAT                   (optional, "json" or "text")
    - WORKFLOW_DAG_DEBUG                        (optional)
    - WORKFLOW_DAG_DYNAMIC_FORK_COLLAPSE_LIMIT  (optional)
    """

    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for this package",
    )

    dynamic_fork_collapse_limit: int = Field(
        default=3,
        ge=1,
        description=(
            "Dynamic forks that spawned at least this many children are shown as a "
            "single placeholder instead of one vertex per child"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_DAG_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, json_output=self.log_format == "json")

        if self.debug:
            logging.getLogger("workflow_dag").setLevel(logging.DEBUG)
