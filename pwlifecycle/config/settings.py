# pwlifecycle/config/settings.py
"""
Environment-Aware Configuration with Pydantic v2

This module loads the lifecycle settings from, in priority order:
1. Environment variables
2. ``envs/<env>.env`` for the environment selected by ``ENV``
3. Default values

Required keys are checked separately from pydantic validation so a
missing ``BASE_URL`` can be reported per test as a misconfiguration
instead of aborting the whole run.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from pwlifecycle.config.environments import DEFAULT_ENV, EnvironmentDetector
from pwlifecycle.core.browser_constants import ArtifactMode, BrowserType
from pwlifecycle.core.exceptions.configuration import ConfigurationException
from pwlifecycle.core.logger import get_logger

CRITICAL_KEYS = ("BASE_URL",)


class ArtifactPolicy(BaseModel):
    """
    Which evidence is captured, and when.

    Immutable once built from the loaded settings.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    screenshot_on_step_failure: bool = True
    screenshot_on_test_failure: bool = True
    trace: ArtifactMode = ArtifactMode.ON_FAILURE
    video: ArtifactMode = ArtifactMode.ALWAYS


class LifecycleSettings(BaseSettings):
    """
    Settings for browser sessions and artifact capture.

    Field aliases are the configuration keys as they appear in the
    environment file and in the process environment.
    """

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(
        default=DEFAULT_ENV,
        validation_alias="ENV",
        description="Selected environment name"
    )

    base_url: Optional[str] = Field(
        default=None,
        validation_alias="BASE_URL",
        description="Base URL for every browser context. Required."
    )

    headless: bool = Field(
        default=True,
        validation_alias="HEADLESS",
        description="Run browser in headless mode"
    )

    slow_mo: int = Field(
        default=0,
        ge=0,
        validation_alias="SLOWMO",
        description="Slow down operations by milliseconds"
    )

    browser_type: BrowserType = Field(
        default=BrowserType.CHROMIUM,
        validation_alias="BROWSER_TYPE",
        description="Browser engine (chromium, firefox, webkit)"
    )

    # Tracing options
    screenshot: bool = Field(
        default=True,
        validation_alias="SCREENSHOT",
        description="Record screenshots into traces"
    )

    snapshot: bool = Field(
        default=True,
        validation_alias="SNAPSHOT",
        description="Record DOM snapshots into traces"
    )

    # Artifact policy
    screenshot_on_step_failure: bool = Field(
        default=True,
        validation_alias="ARTIFACT_SCREENSHOT_ON_STEP_FAIL"
    )

    screenshot_on_test_failure: bool = Field(
        default=True,
        validation_alias="ARTIFACT_SCREENSHOT_ON_TEST_FAIL"
    )

    trace_policy: ArtifactMode = Field(
        default=ArtifactMode.ON_FAILURE,
        validation_alias="ARTIFACT_TRACE_POLICY"
    )

    video_policy: ArtifactMode = Field(
        default=ArtifactMode.ALWAYS,
        validation_alias="ARTIFACT_VIDEO_POLICY"
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL"
    )

    @field_validator("base_url", mode="before")
    @classmethod
    def validate_base_url(cls, v: Any) -> Optional[str]:
        """Blank means unset; anything else must be an absolute URL."""
        if v is None:
            return None
        v = str(v).strip()
        if not v:
            return None
        result = urlparse(v)
        if not all([result.scheme, result.netloc]):
            raise ValueError(f"Invalid BASE_URL: {v}")
        return v

    @field_validator("browser_type", mode="before")
    @classmethod
    def validate_browser_type(cls, v: Any) -> BrowserType:
        """Unknown engines fall back to the primary engine with a warning."""
        if isinstance(v, BrowserType):
            return v
        name = str(v).strip().lower()
        try:
            return BrowserType(name)
        except ValueError:
            fallback = BrowserType.default()
            get_logger("settings").warning(
                f"Unknown browser type: {v}. Defaulting to {fallback.value}.",
                browser_type=str(v),
                fallback=fallback.value
            )
            return fallback

    @field_validator("trace_policy", "video_policy", mode="before")
    @classmethod
    def normalize_artifact_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v_upper

    @property
    def artifact_policy(self) -> ArtifactPolicy:
        return ArtifactPolicy(
            screenshot_on_step_failure=self.screenshot_on_step_failure,
            screenshot_on_test_failure=self.screenshot_on_test_failure,
            trace=self.trace_policy,
            video=self.video_policy,
        )

    @property
    def is_ci(self) -> bool:
        return EnvironmentDetector.is_ci(self.environment)

    def missing_critical_keys(self) -> List[str]:
        """
        List required keys that are absent or blank.

        Never raises; callers decide how to report misconfiguration.
        """
        missing = []
        if not self.base_url:
            missing.append("BASE_URL")
        return missing


def load_settings(environment: Optional[str] = None, base_dir: Optional[Path] = None) -> LifecycleSettings:
    """
    Load and validate settings for an environment.

    Args:
        environment: Environment name (``ENV`` or ``local`` if None)
        base_dir: Directory holding ``envs/`` (working directory if None)

    Returns:
        LifecycleSettings: Validated settings

    Raises:
        ConfigurationException: If a value is invalid or a critical key is missing

    Example:
        >>> settings = load_settings("staging")
        >>> settings.base_url
        'https://staging.example.com/'
    """
    logger = get_logger("settings")
    env = environment or EnvironmentDetector.detect_environment()
    env_file = EnvironmentDetector.env_file_for(env, base_dir)

    if not env_file.is_file():
        logger.warning(
            "Environment file not found",
            environment=env,
            env_file=str(env_file)
        )

    try:
        settings = LifecycleSettings(
            _env_file=env_file if env_file.is_file() else None,
            ENV=env,
        )
    except ValidationError as e:
        raise ConfigurationException(
            f"Invalid configuration for environment: {env}: {e}",
            environment=env,
            original_exception=e
        ) from e

    missing = settings.missing_critical_keys()
    if missing:
        raise ConfigurationException(
            f"Critical configuration keys are missing or empty: {missing} for environment: {env}",
            missing_keys=missing,
            environment=env
        )

    logger.debug(
        "Settings loaded",
        environment=env,
        browser_type=settings.browser_type.value,
        headless=settings.headless,
        ci=settings.is_ci
    )
    return settings


class LoggingSettings(BaseSettings):
    """Only the keys needed before logging is configured."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")


def load_log_level(environment: Optional[str] = None, base_dir: Optional[Path] = None) -> str:
    """
    Read ``LOG_LEVEL`` for an environment without validating anything else.

    Unknown levels fall back to INFO. Nothing is logged here because logging
    is not configured yet when this runs.
    """
    env = environment or EnvironmentDetector.detect_environment()
    env_file = EnvironmentDetector.env_file_for(env, base_dir)
    level = LoggingSettings(_env_file=env_file if env_file.is_file() else None).log_level.strip().upper()
    return level if level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO"


@lru_cache(maxsize=1)
def get_settings() -> LifecycleSettings:
    """
    Get cached settings for the selected environment.

    The cache can be cleared using get_settings.cache_clear()
    or reload_settings().
    """
    return load_settings()


def reload_settings() -> LifecycleSettings:
    """Force reload settings by clearing cache."""
    get_settings.cache_clear()
    return get_settings()
