# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_bulk_admin

"""
Configuration management for the bulk administration runner.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coreason_bulk_admin.domain.context import ConfirmMode, RunOptions
from coreason_bulk_admin.exceptions import SessionError


class Settings(BaseSettings):
    """
    Application configuration using environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="BULK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Run policy
    continue_on_error: bool = Field(default=True, description="Keep processing after a failed identity.")
    isolate_exceptions: bool = Field(default=True, description="Capture action errors as Failed results.")
    confirm_mode: ConfirmMode = Field(default=ConfirmMode.NEVER, description="always, never or dry-run.")
    fail_on_any_error: bool = Field(default=False, description="Exit non-zero when any identity fails.")

    # Logging & reporting
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Optional rotating log file path.")
    report_dir: Optional[str] = Field(
        default=None, description="Write a markdown report per run into this directory unless --report is given."
    )

    # Local OS facilities
    shell_timeout: float = Field(default=300, description="Timeout in seconds for one subprocess call.")

    # Microsoft Graph (only validated when a Graph backed command runs)
    tenant_id: Optional[str] = Field(default=None)
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[SecretStr] = Field(default=None)
    graph_base_url: str = Field(default="https://graph.microsoft.com/v1.0")
    http_timeout: float = Field(default=30, description="Timeout in seconds for one Graph request.")
    max_http_retries: int = Field(default=3, description="Attempts for a throttled Graph request.")

    @field_validator("shell_timeout", "http_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @field_validator("max_http_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_http_retries must be at least 1.")
        return v

    def run_options(self) -> RunOptions:
        return RunOptions(
            continue_on_error=self.continue_on_error,
            confirm=self.confirm_mode,
            isolate_exceptions=self.isolate_exceptions,
            fail_on_any_error=self.fail_on_any_error,
        )

    def require_graph(self) -> None:
        """
        Ensure the Microsoft Graph app registration is configured.
        """
        missing = [
            name
            for name, value in (
                ("BULK_TENANT_ID", self.tenant_id),
                ("BULK_CLIENT_ID", self.client_id),
                ("BULK_CLIENT_SECRET", self.client_secret),
            )
            if not value or (isinstance(value, SecretStr) and not value.get_secret_value())
        ]
        if missing:
            raise SessionError(f"Microsoft Graph is not configured. Missing: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings class.
    """
    return Settings()
