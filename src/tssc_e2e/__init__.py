# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""tssc-e2e: End-to-end verification harness for trusted software supply chain pipelines."""

__version__ = "0.1.0"
__author__ = "LF Release Engineering"
__email__ = "releng@linuxfoundation.org"

from tssc_e2e.core.polling import PollPolicy, wait_for

__all__ = ["PollPolicy", "wait_for"]
