# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Tests for the gitops commands."""

import pathlib

from typer.testing import CliRunner

from tssc_e2e.cli import app

STAGE = "spec:\n  containers:\n    - image: quay.io/rhtap/app:old\n  replicas: 1\n"


class TestGitOpsCommands:
    """Test cases for gitops commands."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.runner = CliRunner()

    def _write(self, directory: pathlib.Path, name: str, content: str) -> pathlib.Path:
        path = directory / name
        path.write_text(content)
        return path

    def test_extract_image(self, tmp_path: pathlib.Path, deployment_patch: str) -> None:
        """Test printing the image of a manifest."""
        manifest = self._write(tmp_path, "development.yaml", deployment_patch)

        result = self.runner.invoke(app, ["gitops", "extract-image", str(manifest)])

        assert result.exit_code == 0
        assert result.output.strip() == "quay.io/rhtap/python-x7k2:sha256-0a1b2c3d.sbom"

    def test_extract_image_missing(self, tmp_path: pathlib.Path) -> None:
        """Test a manifest without an image line."""
        manifest = self._write(tmp_path, "empty.yaml", "kind: Deployment\n")

        result = self.runner.invoke(app, ["gitops", "extract-image", str(manifest)])

        assert result.exit_code == 1
        assert "Image not found" in result.output

    def test_extract_image_unreadable(self, tmp_path: pathlib.Path) -> None:
        """Test a path that cannot be read."""
        result = self.runner.invoke(app, ["gitops", "extract-image", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_promote_to_stdout(self, tmp_path: pathlib.Path, deployment_patch: str) -> None:
        """Test that the promoted manifest is printed and the target left alone."""
        source = self._write(tmp_path, "development.yaml", deployment_patch)
        target = self._write(tmp_path, "stage.yaml", STAGE)

        result = self.runner.invoke(app, ["gitops", "promote", str(source), str(target)])

        assert result.exit_code == 0
        assert result.output == (
            "spec:\n  containers:\n    - image: quay.io/rhtap/python-x7k2:sha256-0a1b2c3d.sbom\n  replicas: 1\n"
        )
        assert target.read_text() == STAGE

    def test_promote_in_place(self, tmp_path: pathlib.Path, deployment_patch: str) -> None:
        """Test writing the promotion back to the target."""
        source = self._write(tmp_path, "development.yaml", deployment_patch)
        target = self._write(tmp_path, "stage.yaml", STAGE)

        result = self.runner.invoke(app, ["gitops", "promote", str(source), str(target), "--in-place"])

        assert result.exit_code == 0
        assert target.read_text() == (
            "spec:\n  containers:\n    - image: quay.io/rhtap/python-x7k2:sha256-0a1b2c3d.sbom\n  replicas: 1\n"
        )

    def test_promote_explicit_image(self, tmp_path: pathlib.Path) -> None:
        """Test promoting an explicit image."""
        source = self._write(tmp_path, "development.yaml", "kind: Deployment\n")
        target = self._write(tmp_path, "stage.yaml", STAGE)

        result = self.runner.invoke(
            app, ["gitops", "promote", str(source), str(target), "--image", "quay.io/rhtap/app:v2"]
        )

        assert result.exit_code == 0
        assert "- image: quay.io/rhtap/app:v2" in result.output

    def test_promote_target_without_image(self, tmp_path: pathlib.Path, deployment_patch: str) -> None:
        """Test that a target without an image line fails."""
        source = self._write(tmp_path, "development.yaml", deployment_patch)
        target = self._write(tmp_path, "stage.yaml", "kind: Deployment\n")

        result = self.runner.invoke(app, ["gitops", "promote", str(source), str(target), "--in-place"])

        assert result.exit_code == 1
        assert target.read_text() == "kind: Deployment\n"
