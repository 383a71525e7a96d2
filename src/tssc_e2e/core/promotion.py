# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Image promotion between GitOps environments.

Manifests are patched as text, not parsed as YAML: the first ``- image:``
line wins. Manifests with several image lines are patched on the first
one only.
"""

import logging
import re
from typing import Optional

from .errors import ImageNotFoundError

logger = logging.getLogger(__name__)

# Captures up to the line ending; a CR is never part of the image
IMAGE_PATTERN = re.compile(r"- image: ([^\r\n]*)")


def deployment_patch_path(component: str, environment: str) -> str:
    """Path of an environment's deployment patch inside a GitOps repository."""
    return f"components/{component}/overlays/{environment}/deployment-patch.yaml"


def extract_image(manifest: str) -> str:
    """Return the image of the first ``- image:`` line.

    Raises:
        ImageNotFoundError: If the manifest has no image line
    """
    match = IMAGE_PATTERN.search(manifest)
    if not match:
        raise ImageNotFoundError("Image not found in the gitops repository path")

    image = match.group(1)
    logger.info(f"Extracted image: {image}")
    return image


def promote(source_manifest: str, target_manifest: str, image: Optional[str] = None) -> str:
    """Put the source environment's image into the target manifest.

    Args:
        source_manifest: Manifest of the environment promoted from
        target_manifest: Manifest of the environment promoted to
        image: Image to set; extracted from ``source_manifest`` when omitted

    Returns:
        The target manifest with its first image line replaced

    Raises:
        ImageNotFoundError: If either manifest has no image line
    """
    if image is None:
        image = extract_image(source_manifest)

    if not IMAGE_PATTERN.search(target_manifest):
        raise ImageNotFoundError("Image not found in the target manifest")

    # A callable replacement keeps backslashes in the image value literal
    return IMAGE_PATTERN.sub(lambda _: f"- image: {image}", target_manifest, count=1)


def parse_sbom_version(log: str) -> str:
    """Text between the first ``sha256-`` and the last ``.sbom`` of a build log."""
    return log[log.find("sha256-") + len("sha256-"):log.rfind(".sbom")]
