"""
Configuration settings for the rolegate authorization engine.

This module defines the configuration schema using Pydantic settings,
supporting environment variables and direct configuration.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuration settings for the access control engine.

    Settings tune how conditions reference the evaluation context, how
    custom condition functions are namespaced and how verbose decision
    logging is. They can be provided via environment variables or direct
    instantiation.

    Environment Variable Mapping:
        All settings can be configured via environment variables by prefixing
        with 'ROLEGATE_' (e.g., ROLEGATE_PATH_PREFIX, ROLEGATE_LOG_DECISIONS).

    Example:
        >>> settings = Settings(log_decisions=True)
        >>> ac = AccessControl(settings=settings)
    """

    path_prefix: str = Field(
        default="$.",
        description="Marker that turns a condition key or value into a context path",
    )
    custom_condition_prefix: str = Field(
        default="custom:",
        description="Namespace prepended to registered custom condition function names",
    )
    warn_on_condition_override: bool = Field(
        default=True,
        description="Log a warning when a custom condition function name is re-registered",
    )
    log_decisions: bool = Field(
        default=False,
        description="Log every permission decision at INFO level instead of DEBUG",
    )

    model_config = SettingsConfigDict(
        env_prefix="ROLEGATE_",
        case_sensitive=False,
        extra="forbid",
    )

    def validate_configuration(self) -> List[str]:
        """
        Validate configuration and return list of issues.

        Returns:
            List of configuration issues (empty if valid)
        """
        issues = []

        if not self.path_prefix:
            issues.append("path_prefix cannot be empty")
        elif self.path_prefix[0] != "$":
            issues.append("path_prefix must start with '$'")

        if not self.custom_condition_prefix:
            issues.append("custom_condition_prefix cannot be empty")

        return issues


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
