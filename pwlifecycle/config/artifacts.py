# pwlifecycle/config/artifacts.py
"""
Artifact Locations and File Names

Every artifact lives under a reports root (``build/reports`` in the
working directory by default) in a fixed subdirectory, and is named
``<TestClass>-<testMethod>-<yyyyMMdd-HHmmss>.<ext>``.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from pwlifecycle.core.browser_constants import (
    ARTIFACT_TIMESTAMP_FORMAT,
    UNKNOWN_CLASS,
    UNKNOWN_METHOD,
    ArtifactDirs,
)


@dataclass(frozen=True)
class ArtifactPaths:
    """Directory layout for reports, traces, videos and screenshots."""

    reports_dir: Path

    @classmethod
    def default(cls) -> "ArtifactPaths":
        return cls(Path.cwd().joinpath(*ArtifactDirs.REPORTS_ROOT))

    @property
    def traces_dir(self) -> Path:
        return self.reports_dir / ArtifactDirs.TRACES

    @property
    def videos_dir(self) -> Path:
        return self.reports_dir / ArtifactDirs.VIDEOS

    @property
    def screenshots_dir(self) -> Path:
        return self.reports_dir / ArtifactDirs.SCREENSHOTS

    def ensure(self) -> "ArtifactPaths":
        """Create every directory if missing."""
        for directory in (self.reports_dir, self.traces_dir, self.videos_dir, self.screenshots_dir):
            directory.mkdir(parents=True, exist_ok=True)
        return self


def build_artifact_file_name(
        class_name: Optional[str],
        method_name: Optional[str],
        ext: Optional[str] = None,
        now: Optional[datetime] = None
) -> str:
    """
    Build a stable artifact file name.

    Two artifacts of the same test written within the same second get the
    same name; tests on one worker run sequentially, so in practice only a
    test shorter than a second can collide with its successor.

    Args:
        class_name: Test class name (``UnknownClass`` if None or blank)
        method_name: Test method name (``unknownMethod`` if None or blank)
        ext: Extension with or without the leading dot
        now: Timestamp to use (current local time if None)

    Example:
        >>> build_artifact_file_name("DemoTest", "test_title", "png", datetime(2024, 5, 1, 9, 30, 5))
        'DemoTest-test_title-20240501-093005.png'
    """
    safe_class = class_name if class_name and class_name.strip() else UNKNOWN_CLASS
    safe_method = method_name if method_name and method_name.strip() else UNKNOWN_METHOD
    timestamp = (now or datetime.now()).strftime(ARTIFACT_TIMESTAMP_FORMAT)
    suffix = ""
    if ext:
        suffix = ext if ext.startswith(".") else f".{ext}"
    return f"{safe_class}-{safe_method}-{timestamp}{suffix}"
