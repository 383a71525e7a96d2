# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Artifact directory for logs collected during a scenario."""

import logging
import pathlib
from typing import Optional

logger = logging.getLogger(__name__)


def get_artifact_dir(artifact_dir: Optional[str] = None) -> pathlib.Path:
    """Explicit directory (usually $ARTIFACT_DIR via the harness credentials), else ./artifacts."""
    if artifact_dir:
        return pathlib.Path(artifact_dir)
    return pathlib.Path.cwd() / "artifacts"


class ArtifactWriter:
    """Writes log files below an artifact directory."""

    def __init__(self, artifact_dir: Optional[str] = None) -> None:
        self.root = get_artifact_dir(artifact_dir)

    def write(self, store_directory: str, file_name: str, data: str) -> Optional[pathlib.Path]:
        """Write ``data`` to ``<root>/<store_directory>/<file_name>``, replacing any existing file.

        Returns:
            Path written, or None if the file could not be written
        """
        directory = self.root / store_directory
        path = directory / file_name

        try:
            directory.mkdir(parents=True, exist_ok=True)
            if path.exists():
                logger.info(f"{file_name} already exists.")
            path.write_text(data, encoding="utf-8")
            return path
        except OSError as e:
            logger.error(f"Failed to write artifact {path}: {e}")
            return None
