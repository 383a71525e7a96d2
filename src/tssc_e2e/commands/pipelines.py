# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Pipeline verification commands.

Each command follows one CI backend to a verdict and turns it into the
process exit code: 0 when the pipeline passed, 1 otherwise.
"""

import logging
import pathlib
from typing import Optional

import httpx
import typer
from kubernetes.client.rest import ApiException
from rich.console import Console

from tssc_e2e.core.artifacts import ArtifactWriter
from tssc_e2e.core.config import HarnessConfig, load_runtime_config
from tssc_e2e.core.errors import ConfigError, HarnessError
from tssc_e2e.core.gitlab import GitLabClient
from tssc_e2e.core.jenkins import JenkinsClient
from tssc_e2e.core.kube import KubeClient
from tssc_e2e.core.models import PipelineStatus
from tssc_e2e.core.output import OUTPUT_FORMATS, format_and_output, print_verdict
from tssc_e2e.core.promotion import parse_sbom_version
from tssc_e2e.core.resolver import PipelineResolver
from tssc_e2e.core.trustification import SBOM_SEARCH_TIMEOUT, TrustificationClient
from tssc_e2e.core.verifier import PIPELINE_RUN_TIMEOUT, TektonVerifier, expected_tasks_for

# Constants
GITLAB_TOKEN_HELP = "GitLab personal access token"
GITLAB_HOST_HELP = "GitLab instance URL"
JENKINS_SERVER_HELP = "Jenkins server URL"
JENKINS_USER_HELP = "Jenkins username"
JENKINS_TOKEN_HELP = "Jenkins password or API token"
INTERVAL_HELP = "Seconds between status checks (default: $TSSC_POLL_INTERVAL or 10)"
CONFIG_FILE_HELP = "Software templates file with harness settings"

EVENT_TYPES = ("push", "pull_request")

# Environment variable names
GITLAB_TOKEN_ENV = "GITLAB_TOKEN"
GITLAB_HOST_ENV = "GITLAB_HOST"
JENKINS_SERVER_ENV = "JENKINS_URL"
JENKINS_USER_ENV = "JENKINS_USERNAME"
JENKINS_TOKEN_ENV = "JENKINS_TOKEN"

logger = logging.getLogger(__name__)
console = Console()

pipelines_app = typer.Typer(help="Follow CI pipelines and verify their outcome")


def _runtime_config(config_file: Optional[pathlib.Path]) -> HarnessConfig:
    try:
        return load_runtime_config(config_file)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _gitlab_client(token: Optional[str], host: str) -> GitLabClient:
    try:
        return GitLabClient(token or "", host=host)
    except HarnessError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@pipelines_app.command("gitlab-wait")
def gitlab_wait(
    project_id: int = typer.Option(..., "--project-id", "-p", help="GitLab project ID"),
    ref: str = typer.Option("main", "--ref", "-r", help="Branch the commit was pushed to"),
    sha: str = typer.Option(..., "--sha", help="Commit SHA whose pipeline to follow"),
    timeout: float = typer.Option(
        PIPELINE_RUN_TIMEOUT, "--timeout", "-t", help="Seconds to wait for the pipeline to finish (0 waits forever)"
    ),
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help=INTERVAL_HELP),
    token: Optional[str] = typer.Option(None, "--token", help=GITLAB_TOKEN_HELP, envvar=GITLAB_TOKEN_ENV),
    host: str = typer.Option("https://gitlab.com", "--host", help=GITLAB_HOST_HELP, envvar=GITLAB_HOST_ENV),
    config_file: Optional[pathlib.Path] = typer.Option(None, "--config-file", "-c", help=CONFIG_FILE_HELP),
) -> None:
    """Wait for the pipeline of a commit and report its final status.

    Waits without limit for the pipeline to be created, then up to
    --timeout seconds for it to finish. Exits 1 unless it succeeded.
    """
    harness_config = _runtime_config(config_file)
    policy = harness_config.poll if interval is None else harness_config.poll.with_interval(interval)

    client = _gitlab_client(token or harness_config.credentials.gitlab_token, host)
    try:
        resolver = PipelineResolver(client, policy)
        pipeline = resolver.find_pipeline(project_id, ref, sha)
        if pipeline is None:
            console.print(f"[red]Error: No pipeline found for {ref}@{sha}[/red]")
            raise typer.Exit(1)

        console.print(f"[cyan]Following pipeline {pipeline.id}[/cyan] {pipeline.web_url or ''}")
        status = resolver.wait_for_pipeline_to_finish(project_id, pipeline.id, timeout)
    except HarnessError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        client.close()

    if status is None:
        print_verdict(f"GitLab pipeline {pipeline.id}", False, f"not finished after {timeout}s")
        raise typer.Exit(1)

    passed = status is PipelineStatus.SUCCESS
    print_verdict(f"GitLab pipeline {pipeline.id}", passed, status.value)
    if not passed:
        raise typer.Exit(1)


@pipelines_app.command("gitlab-latest")
def gitlab_latest(
    project_id: int = typer.Option(..., "--project-id", "-p", help="GitLab project ID"),
    output_format: str = typer.Option(
        "table", "--format", "-f", help=f"Output format: {', '.join(OUTPUT_FORMATS)}"
    ),
    token: Optional[str] = typer.Option(None, "--token", help=GITLAB_TOKEN_HELP, envvar=GITLAB_TOKEN_ENV),
    host: str = typer.Option("https://gitlab.com", "--host", help=GITLAB_HOST_HELP, envvar=GITLAB_HOST_ENV),
) -> None:
    """Show the most recent pipeline of a project."""
    if output_format not in OUTPUT_FORMATS:
        console.print(f"[red]Error: Unsupported output format: {output_format}[/red]")
        raise typer.Exit(1)

    client = _gitlab_client(token, host)
    try:
        pipeline = PipelineResolver(client).get_latest_pipeline(project_id)
    except (HarnessError, httpx.HTTPError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        client.close()

    if pipeline is None:
        console.print(f"[yellow]No pipelines found for project {project_id}[/yellow]")
        raise typer.Exit(1)

    table_config = {
        "title": f"Latest pipeline of project {project_id}",
        "columns": [
            {"name": "ID", "field": "id", "style": "cyan"},
            {"name": "Ref", "field": "ref", "style": "green"},
            {"name": "SHA", "field": "sha"},
            {"name": "Status", "field": "status", "style": "magenta"},
            {"name": "Created", "field": "created_at"},
            {"name": "URL", "field": "web_url", "style": "blue"},
        ],
    }
    format_and_output([pipeline.to_dict()], output_format, table_config)


@pipelines_app.command("tekton-verify")
def tekton_verify(
    repository: str = typer.Option(..., "--repository", "-r", help="Repository URL the PipelineRun was created for"),
    namespace: str = typer.Option(..., "--namespace", "-n", help="Namespace the PipelineRun runs in"),
    event_type: str = typer.Option(..., "--event-type", "-e", help="Pipelines-as-Code event: push or pull_request"),
    gitops: bool = typer.Option(False, "--gitops", help="Expect the GitOps repository task set"),
    timeout: float = typer.Option(
        PIPELINE_RUN_TIMEOUT, "--timeout", "-t", help="Seconds to wait for the PipelineRun to finish"
    ),
    config_file: Optional[pathlib.Path] = typer.Option(None, "--config-file", "-c", help=CONFIG_FILE_HELP),
) -> None:
    """Verify the tasks a Pipelines-as-Code PipelineRun executed.

    Every task must have run in a pod, exactly the expected tasks must be
    present, and signing and ACS tasks must have used cosign and roxctl.
    """
    if event_type not in EVENT_TYPES:
        console.print(f"[red]Error: --event-type must be one of {', '.join(EVENT_TYPES)}[/red]")
        raise typer.Exit(1)

    expected = expected_tasks_for(event_type, gitops=gitops)
    harness_config = _runtime_config(config_file)
    try:
        kube = KubeClient(
            policy=harness_config.poll,
            artifacts=ArtifactWriter(harness_config.credentials.artifact_dir),
        )
        verifier = TektonVerifier(kube)
        passed = verifier.verify_pipeline_run_by_repository(
            repository, namespace, event_type, expected.tasks, timeout=timeout
        )
    except (HarnessError, ApiException) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    print_verdict(f"Tekton {event_type} pipeline for {repository}", passed, f"{len(expected)} expected tasks")
    if not passed:
        raise typer.Exit(1)


@pipelines_app.command("jenkins-build")
def jenkins_build(
    job: str = typer.Option(..., "--job", "-j", help="Jenkins job name"),
    timeout: float = typer.Option(
        PIPELINE_RUN_TIMEOUT, "--timeout", "-t", help="Seconds to wait for the build to finish"
    ),
    server: Optional[str] = typer.Option(None, "--server", "-s", help=JENKINS_SERVER_HELP, envvar=JENKINS_SERVER_ENV),
    user: Optional[str] = typer.Option(None, "--user", "-u", help=JENKINS_USER_HELP, envvar=JENKINS_USER_ENV),
    password: Optional[str] = typer.Option(
        None, "--password", "-P", help=JENKINS_TOKEN_HELP, envvar=JENKINS_TOKEN_ENV
    ),
    config_file: Optional[pathlib.Path] = typer.Option(None, "--config-file", "-c", help=CONFIG_FILE_HELP),
) -> None:
    """Trigger a Jenkins build and wait for its result. Exits 1 unless SUCCESS."""
    harness_config = _runtime_config(config_file)
    credentials = harness_config.credentials
    try:
        client = JenkinsClient(
            server or credentials.jenkins_url or "",
            user or credentials.jenkins_username,
            password or credentials.jenkins_token,
            policy=harness_config.poll,
        )
        queue_id = client.build_job(job)
        build_number = client.wait_for_build_number(queue_id, timeout=timeout)
        if build_number is None:
            print_verdict(f"Jenkins job {job}", False, "build never started")
            raise typer.Exit(1)

        result = client.wait_for_build_to_finish(job, build_number, timeout=timeout)
    except HarnessError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if result is None:
        print_verdict(f"Jenkins job {job} #{build_number}", False, f"not finished after {timeout}s")
        raise typer.Exit(1)

    passed = result == "SUCCESS"
    print_verdict(f"Jenkins job {job} #{build_number}", passed, result)
    if not passed:
        raise typer.Exit(1)


@pipelines_app.command("sbom-wait")
def sbom_wait(
    name: Optional[str] = typer.Argument(None, help="SBOM name or version to search for"),
    build_log: Optional[pathlib.Path] = typer.Option(
        None, "--build-log", "-l", help="Buildah log to read the SBOM version from"
    ),
    timeout: float = typer.Option(
        SBOM_SEARCH_TIMEOUT, "--timeout", "-t", help="Seconds to wait for the SBOM to be indexed"
    ),
    config_file: Optional[pathlib.Path] = typer.Option(None, "--config-file", "-c", help=CONFIG_FILE_HELP),
) -> None:
    """Wait until the SBOM of a build is searchable in Trustification.

    The OIDC and bombastic endpoints are read from $BOMBASTIC_API_URL,
    $OIDC_ISSUER_URL, $OIDC_CLIENT_ID and $OIDC_CLIENT_SECRET.
    """
    if (name is None) == (build_log is None):
        console.print("[red]Error: Give either an SBOM name or --build-log[/red]")
        raise typer.Exit(1)

    if build_log is not None:
        try:
            name = parse_sbom_version(build_log.read_text())
        except OSError as e:
            console.print(f"[red]Error: Cannot read {build_log}: {e}[/red]")
            raise typer.Exit(1)

    harness_config = _runtime_config(config_file)
    credentials = harness_config.credentials
    try:
        with TrustificationClient(
            credentials.bombastic_api_url,
            credentials.oidc_issuer_url,
            credentials.oidc_client_id,
            credentials.oidc_client_secret,
            policy=harness_config.poll,
        ) as client:
            client.initialize_tpa_token()
            result = client.wait_for_sbom_search_by_name(str(name), timeout=timeout)
    except HarnessError as e:
        print_verdict(f"SBOM {name}", False, str(e))
        raise typer.Exit(1)

    print_verdict(f"SBOM {name}", True, f"{len(result)} result")
