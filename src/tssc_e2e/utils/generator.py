# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Random names for generated repositories."""

import random
import string

_ALPHABET = string.ascii_lowercase + string.digits


def generate_random_chars(length: int) -> str:
    """Lowercase alphanumeric string of ``length`` characters."""
    return "".join(random.choice(_ALPHABET) for _ in range(length))


def generate_repository_name(template: str, length: int = 4) -> str:
    """Unique-enough repository name for a scenario, e.g. ``go-x7k2``."""
    return f"{template}-{generate_random_chars(length)}"
