# tests/unit/test_artifacts.py
"""
Unit tests for artifact directories and file naming.
"""

from datetime import datetime, timedelta

import pytest

from pwlifecycle.config.artifacts import ArtifactPaths, build_artifact_file_name

MOMENT = datetime(2024, 5, 1, 9, 30, 5)


class TestBuildArtifactFileName:
    """Test the <Class>-<method>-<timestamp>.<ext> convention."""

    def test_convention(self):
        name = build_artifact_file_name("DemoTest", "test_title", ".zip", now=MOMENT)
        assert name == "DemoTest-test_title-20240501-093005.zip"

    def test_extension_without_dot(self):
        name = build_artifact_file_name("DemoTest", "test_title", "png", now=MOMENT)
        assert name == "DemoTest-test_title-20240501-093005.png"

    def test_no_extension(self):
        assert build_artifact_file_name("A", "b", now=MOMENT) == "A-b-20240501-093005"

    @pytest.mark.parametrize("class_name,method_name,expected", [
        (None, "test_x", "UnknownClass-test_x"),
        ("DemoTest", None, "DemoTest-unknownMethod"),
        ("", "  ", "UnknownClass-unknownMethod"),
    ])
    def test_unknown_parts(self, class_name, method_name, expected):
        name = build_artifact_file_name(class_name, method_name, ".png", now=MOMENT)
        assert name == f"{expected}-20240501-093005.png"

    def test_names_differ_a_second_apart(self):
        first = build_artifact_file_name("DemoTest", "test_title", ".zip", now=MOMENT)
        second = build_artifact_file_name("DemoTest", "test_title", ".zip", now=MOMENT + timedelta(seconds=1))
        assert first != second

    def test_same_second_collides(self):
        later = MOMENT + timedelta(milliseconds=400)
        assert build_artifact_file_name("A", "b", ".zip", now=MOMENT) == build_artifact_file_name("A", "b", ".zip", now=later)


class TestArtifactPaths:
    """Test the reports directory layout."""

    def test_layout(self, tmp_path):
        paths = ArtifactPaths(tmp_path)

        assert paths.traces_dir == tmp_path / "traces"
        assert paths.videos_dir == tmp_path / "videos"
        assert paths.screenshots_dir == tmp_path / "screenshots"

    def test_ensure_creates_everything(self, tmp_path):
        paths = ArtifactPaths(tmp_path / "build" / "reports").ensure()

        for directory in (paths.reports_dir, paths.traces_dir, paths.videos_dir, paths.screenshots_dir):
            assert directory.is_dir()

    def test_ensure_is_idempotent(self, tmp_path):
        paths = ArtifactPaths(tmp_path)
        paths.ensure()
        paths.ensure()
        assert paths.traces_dir.is_dir()

    def test_default_under_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert ArtifactPaths.default().reports_dir == tmp_path.resolve() / "build" / "reports"
