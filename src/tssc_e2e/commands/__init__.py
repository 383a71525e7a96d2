# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Command modules for tssc-e2e."""

from tssc_e2e.commands.config import config_app
from tssc_e2e.commands.gitops import gitops_app
from tssc_e2e.commands.pipelines import pipelines_app

__all__ = ["config_app", "gitops_app", "pipelines_app"]
