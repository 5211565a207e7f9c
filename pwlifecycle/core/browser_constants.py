# pwlifecycle/core/browser_constants.py
"""
Browser Management Constants

Constants and enums shared by the configuration layer and the session
registry: the closed set of engines, the engines that record video
reliably, container hardening arguments, and tracing defaults.
"""

from enum import Enum
from typing import Dict, List


class BrowserType(str, Enum):
    """Supported browser engines. The first member is the fallback."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"

    @classmethod
    def default(cls) -> "BrowserType":
        return cls.CHROMIUM


class ArtifactMode(str, Enum):
    """When a trace or video is surfaced in the report."""

    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    OFF = "off"

    @property
    def enabled(self) -> bool:
        return self is not ArtifactMode.OFF


class BrowserCapabilities:
    """Browser-specific capabilities and limitations."""

    # Firefox recording is unreliable in several environments.
    SUPPORTS_VIDEO: Dict[BrowserType, bool] = {
        BrowserType.CHROMIUM: True,
        BrowserType.FIREFOX: False,
        BrowserType.WEBKIT: True,
    }

    @classmethod
    def supports_video(cls, browser_type: BrowserType) -> bool:
        """Check if the engine records video reliably."""
        return cls.SUPPORTS_VIDEO.get(browser_type, False)


class ChromiumArgs:
    """Chromium command line arguments."""

    # Applied only under CI, where containers ship a tiny /dev/shm and no user namespaces
    CI_ARGS: List[str] = [
        "--disable-dev-shm-usage",
        "--no-sandbox",
    ]

    @classmethod
    def get_args(cls, ci: bool) -> List[str]:
        return cls.CI_ARGS.copy() if ci else []


class TracingDefaults:
    """Options passed to ``context.tracing.start``."""

    SOURCES = True


class ArtifactDirs:
    """Report subdirectories, relative to the reports root."""

    REPORTS_ROOT = ("build", "reports")
    TRACES = "traces"
    VIDEOS = "videos"
    SCREENSHOTS = "screenshots"


ARTIFACT_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
UNKNOWN_CLASS = "UnknownClass"
UNKNOWN_METHOD = "unknownMethod"
