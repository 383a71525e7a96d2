# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Harness configuration.

The templates file (YAML or JSON) says which software templates and which
SCM/CI combinations a run covers; credentials and endpoints come from the
environment. The result is an immutable :class:`HarnessConfig` passed
explicitly to every component.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError
from .polling import PollPolicy

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("softwareTemplates.yaml", "softwareTemplates.json")
CONFIG_FILE_ENV = "SOFTWARE_TEMPLATES_FILE"

DEFAULT_TEMPLATES = ("dotnet-basic", "go", "nodejs", "python", "java-quarkus", "java-springboot")

SCM_PROVIDERS = ("github", "gitlab", "bitbucket")
CI_BACKENDS = ("tekton", "jenkins", "actions", "gitlabci")

DEFAULT_HOSTS = {
    "github": "https://api.github.com",
    "gitlab": "https://gitlab.com",
    "bitbucket": "https://api.bitbucket.org/2.0",
}


@dataclass(frozen=True)
class ProviderConfig:
    """Which CI backends run against one SCM provider."""

    name: str
    active: bool = False
    host: str = ""
    tekton: bool = False
    jenkins: bool = False
    actions: bool = False
    gitlabci: bool = False

    def supports(self, ci: str) -> bool:
        if ci not in CI_BACKENDS:
            raise ConfigError(f"Unknown CI backend '{ci}', expected one of {', '.join(CI_BACKENDS)}")
        return bool(getattr(self, ci))


@dataclass(frozen=True)
class Credentials:
    """Endpoints and secrets read from the environment."""

    gitlab_token: Optional[str] = None
    gitlab_webhook_secret: str = ""
    github_token: Optional[str] = None
    github_organization: str = "rhtap-rhdh-qe"
    bitbucket_username: Optional[str] = None
    bitbucket_app_password: Optional[str] = None
    jenkins_url: Optional[str] = None
    jenkins_username: Optional[str] = None
    jenkins_token: Optional[str] = None
    developer_hub_url: Optional[str] = None
    bombastic_api_url: Optional[str] = None
    oidc_issuer_url: Optional[str] = None
    oidc_client_id: Optional[str] = None
    oidc_client_secret: Optional[str] = None
    artifact_dir: Optional[str] = None

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "Credentials":
        return cls(
            gitlab_token=env.get("GITLAB_TOKEN"),
            gitlab_webhook_secret=env.get("GITLAB_WEBHOOK_SECRET", ""),
            github_token=env.get("GITHUB_TOKEN"),
            github_organization=env.get("GITHUB_ORGANIZATION", "rhtap-rhdh-qe"),
            bitbucket_username=env.get("BITBUCKET_USERNAME"),
            bitbucket_app_password=env.get("BITBUCKET_APP_PASSWORD"),
            jenkins_url=env.get("JENKINS_URL"),
            jenkins_username=env.get("JENKINS_USERNAME"),
            jenkins_token=env.get("JENKINS_TOKEN"),
            developer_hub_url=env.get("RED_HAT_DEVELOPER_HUB_URL"),
            bombastic_api_url=env.get("BOMBASTIC_API_URL"),
            oidc_issuer_url=env.get("OIDC_ISSUER_URL"),
            oidc_client_id=env.get("OIDC_CLIENT_ID"),
            oidc_client_secret=env.get("OIDC_CLIENT_SECRET"),
            artifact_dir=env.get("ARTIFACT_DIR"),
        )


@dataclass(frozen=True)
class HarnessConfig:
    """Immutable configuration for one harness run."""

    templates: Tuple[str, ...] = DEFAULT_TEMPLATES
    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    ocp_version: Optional[str] = None
    pipeline_version: Optional[str] = None
    poll: PollPolicy = field(default_factory=PollPolicy)
    credentials: Credentials = field(default_factory=Credentials)

    def provider(self, name: str) -> ProviderConfig:
        if name not in SCM_PROVIDERS:
            raise ConfigError(f"Unknown SCM provider '{name}', expected one of {', '.join(SCM_PROVIDERS)}")
        return self.providers.get(name, ProviderConfig(name=name, host=DEFAULT_HOSTS[name]))

    def is_enabled(self, provider: str, ci: str, template: Optional[str] = None) -> bool:
        """Whether scenarios for this provider/CI (and template) combination should run."""
        if template is not None and template not in self.templates:
            return False
        config = self.provider(provider)
        return config.active and config.supports(ci)

    def active_providers(self) -> List[str]:
        return [name for name in SCM_PROVIDERS if self.provider(name).active]


def get_standard_config_paths() -> List[Path]:
    """Existing config files in the current directory, then ~/.config/tssc-e2e/."""
    paths: List[Path] = []
    for directory in (Path.cwd(), Path.home() / ".config" / "tssc-e2e"):
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.exists():
                paths.append(candidate)
    return paths


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parse_providers(data: Dict[str, Any]) -> Dict[str, ProviderConfig]:
    pipeline = data.get("pipeline") or {}
    providers: Dict[str, ProviderConfig] = {}

    for name in SCM_PROVIDERS:
        section = data.get(name)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{name}' must be a mapping")

        # 'active' may live in the provider section or in the pipeline section
        active = section.get("active", pipeline.get(name, False))
        providers[name] = ProviderConfig(
            name=name,
            active=_as_bool(active),
            host=str(section.get("host", DEFAULT_HOSTS[name])),
            tekton=_as_bool(section.get("tekton", False)),
            jenkins=_as_bool(section.get("jenkins", False)),
            actions=_as_bool(section.get("actions", False)),
            gitlabci=_as_bool(section.get("gitlabci", False)),
        )

    return providers


def _poll_policy_from_env(env: Mapping[str, str]) -> PollPolicy:
    try:
        return PollPolicy(
            interval=float(env.get("TSSC_POLL_INTERVAL", 10)),
            timeout=float(env.get("TSSC_POLL_TIMEOUT", 0)),
            jitter=float(env.get("TSSC_POLL_JITTER", 0)),
        )
    except ValueError as e:
        raise ConfigError(f"Invalid polling configuration: {e}") from e


def parse_config(data: Dict[str, Any], env: Optional[Mapping[str, str]] = None) -> HarnessConfig:
    """Build and validate a :class:`HarnessConfig` from parsed file data."""
    env = os.environ if env is None else env

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    templates = data.get("templates", list(DEFAULT_TEMPLATES))
    if not isinstance(templates, list) or not templates:
        raise ConfigError("'templates' must be a non-empty list")

    providers = _parse_providers(data)
    if providers and not any(p.active for p in providers.values()):
        raise ConfigError(
            "Seems like none of the Git providers were activated. "
            "'github.active', 'gitlab.active' or 'bitbucket.active' must be true"
        )

    pipeline = data.get("pipeline") or {}
    return HarnessConfig(
        templates=tuple(str(t) for t in templates),
        providers=providers,
        ocp_version=pipeline.get("ocp"),
        pipeline_version=pipeline.get("version"),
        poll=_poll_policy_from_env(env),
        credentials=Credentials.from_env(env),
    )


def load_config(config_path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> HarnessConfig:
    """Load the harness configuration.

    Priority order:
    1. ``config_path`` argument
    2. $SOFTWARE_TEMPLATES_FILE
    3. softwareTemplates.yaml/json in the current directory
    4. softwareTemplates.yaml/json in ~/.config/tssc-e2e/

    Raises:
        ConfigError: If no file is found or its content is invalid
    """
    env = os.environ if env is None else env

    if config_path is None and env.get(CONFIG_FILE_ENV):
        config_path = Path(env[CONFIG_FILE_ENV])

    if config_path is None:
        standard_paths = get_standard_config_paths()
        if not standard_paths:
            raise ConfigError(
                f"No configuration file found; create one of {', '.join(CONFIG_FILE_NAMES)} "
                f"or set {CONFIG_FILE_ENV}"
            )
        config_path = standard_paths[0]

    if not config_path.exists():
        raise ConfigError(f"Specified config file does not exist: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {config_path}: {e}") from e

    logger.info(f"Loaded harness configuration from {config_path}")
    return parse_config(data or {}, env)


def load_runtime_config(
    config_path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> HarnessConfig:
    """Configuration for commands that do not need a templates file.

    A templates file is loaded when one is given or found the way
    :func:`load_config` finds it. Otherwise poll defaults and credentials
    come from the environment alone.
    """
    env = os.environ if env is None else env

    if config_path is None and not env.get(CONFIG_FILE_ENV) and not get_standard_config_paths():
        return HarnessConfig(poll=_poll_policy_from_env(env), credentials=Credentials.from_env(env))
    return load_config(config_path, env)
