# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Exception hierarchy for tssc-e2e."""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigError(HarnessError):
    """The test configuration is missing or invalid."""


class WaitTimeoutError(HarnessError):
    """A bounded wait the caller treats as fatal ran out of time."""


class ImageNotFoundError(HarnessError):
    """No '- image:' line was found in a GitOps manifest."""


class PipelineRunNotFound(HarnessError):
    """No PipelineRun was created for a repository."""


class GitLabError(HarnessError):
    """A GitLab action required by a scenario failed."""


class GitHubError(HarnessError):
    """A GitHub action required by a scenario failed."""


class BitbucketError(HarnessError):
    """A Bitbucket action required by a scenario failed."""


class JenkinsError(HarnessError):
    """A Jenkins action required by a scenario failed."""


class DeveloperHubError(HarnessError):
    """A developer portal request failed."""


class TrustificationError(HarnessError):
    """A Trustification token or SBOM request failed."""
