# pwlifecycle/config/environments.py
"""
Environment Selection

This module decides which environment file feeds the settings and whether
the run is CI-like. The environment name comes from the ``ENV`` variable
and selects ``envs/<env>.env`` under the working directory.
"""

import os
from pathlib import Path
from typing import Optional

DEFAULT_ENV = "local"
ENV_SELECTOR = "ENV"
ENVS_DIR = "envs"
CI_ENV_NAME = "ci"


class EnvironmentDetector:
    """
    Environment detection based on process environment variables.

    Example:
        >>> detector = EnvironmentDetector()
        >>> detector.detect_environment()
        'local'
    """

    @staticmethod
    def detect_environment() -> str:
        """
        Resolve the environment name.

        Returns:
            str: Value of ``ENV`` (stripped), or ``local`` when unset or blank
        """
        env = os.getenv(ENV_SELECTOR, "").strip()
        return env or DEFAULT_ENV

    @staticmethod
    def is_ci(environment: Optional[str] = None) -> bool:
        """
        Check whether the run should use container hardening.

        True when the selected environment is named ``ci`` or the ``CI``
        variable is ``true`` (case-insensitive).
        """
        env = environment if environment is not None else EnvironmentDetector.detect_environment()
        if env.lower() == CI_ENV_NAME:
            return True
        return os.getenv("CI", "").strip().lower() == "true"

    @staticmethod
    def env_file_for(environment: str, base_dir: Optional[Path] = None) -> Path:
        """Path of the environment file for ``environment``."""
        root = base_dir if base_dir is not None else Path.cwd()
        return root / ENVS_DIR / f"{environment}.env"


def is_ci(environment: Optional[str] = None) -> bool:
    """Check whether the current run is CI-like."""
    return EnvironmentDetector.is_ci(environment)
