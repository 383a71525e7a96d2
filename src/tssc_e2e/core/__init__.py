# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Core modules for tssc-e2e."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tssc_e2e.core.gitlab import GitLabClient
    from tssc_e2e.core.jenkins import JenkinsClient
    from tssc_e2e.core.kube import KubeClient
    from tssc_e2e.core.resolver import PipelineResolver
    from tssc_e2e.core.trustification import TrustificationClient
    from tssc_e2e.core.verifier import TaskRunVerifier

__all__ = ["GitLabClient", "JenkinsClient", "KubeClient", "PipelineResolver", "TaskRunVerifier",
           "TrustificationClient"]


def __getattr__(name: str) -> Any:
    """Lazy import for core modules."""
    if name == "GitLabClient":
        from tssc_e2e.core.gitlab import GitLabClient
        return GitLabClient
    elif name == "JenkinsClient":
        from tssc_e2e.core.jenkins import JenkinsClient
        return JenkinsClient
    elif name == "KubeClient":
        from tssc_e2e.core.kube import KubeClient
        return KubeClient
    elif name == "PipelineResolver":
        from tssc_e2e.core.resolver import PipelineResolver
        return PipelineResolver
    elif name == "TaskRunVerifier":
        from tssc_e2e.core.verifier import TaskRunVerifier
        return TaskRunVerifier
    elif name == "TrustificationClient":
        from tssc_e2e.core.trustification import TrustificationClient
        return TrustificationClient
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
