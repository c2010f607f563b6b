"""
Docker Compose stack tools.

These shell out to `docker compose`; stacks are addressed by project name so
only deployment needs the compose file, which is validated with PyYAML and
written to a throwaway directory for the duration of `up`.
"""

import json
import logging
import re
import tempfile
from pathlib import Path
from typing import Annotated, Any

import yaml

from ..runtime.cli import CommandOutput, run_docker_command
from ..runtime.results import CommandResult
from .decorators import tool

logger = logging.getLogger(__name__)

ProjectName = Annotated[str, "Project name of the compose stack"]

_PROJECT_NAME = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class ComposeFileError(ValueError):
    """The compose document is not valid YAML or lacks a services mapping"""


def validate_compose_yaml(content: str) -> dict[str, Any]:
    """
    Parse a compose document and check its overall shape.

    Returns:
        The parsed document.

    Raises:
        ComposeFileError: On YAML syntax errors or a missing/empty `services` mapping.
    """
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ComposeFileError(f"Invalid YAML: {e}") from e

    if not isinstance(document, dict):
        raise ComposeFileError("Compose file must be a YAML mapping")
    services = document.get("services")
    if not isinstance(services, dict) or not services:
        raise ComposeFileError("Compose file must define at least one service under 'services'")
    for name, service in services.items():
        if service is not None and not isinstance(service, dict):
            raise ComposeFileError(f"Service '{name}' must be a mapping")
    return document


def _check_project_name(project_name: str) -> str | None:
    if not _PROJECT_NAME.fullmatch(project_name or ""):
        return (
            f"Invalid project name '{project_name}': use lowercase letters, digits, '-' and '_', "
            "starting with a letter or digit"
        )
    return None


def _to_result(output: CommandOutput, success_message: str, failure_message: str, **data: Any) -> dict[str, Any]:
    return CommandResult(
        success=output.success,
        message=success_message if output.success else failure_message,
        error_message=None if output.success else output.output,
        data={**data, "output": output.output},
    ).to_dict()


async def _run_project_command(project_name: str, *args: str, **kwargs: Any) -> CommandOutput:
    return await run_docker_command(["compose", "-p", project_name, *args], **kwargs)


@tool(description="Deploys a Docker Compose stack from YAML configuration")
async def deploy_compose_stack(
    project_name: Annotated[str, "Project name for the compose stack"],
    compose_yaml: Annotated[str, "Docker Compose YAML content"],
    environment: Annotated[dict[str, str] | None, "Environment variables for variable substitution"] = None,
    working_directory: Annotated[str | None, "Project directory used to resolve relative paths"] = None,
    build: Annotated[bool, "Build images before starting containers"] = False,
    force_recreate: Annotated[bool, "Recreate containers even if their configuration hasn't changed"] = False,
    no_deps: Annotated[bool, "Don't start linked services"] = False,
    pull: Annotated[bool, "Pull images before starting containers"] = False,
) -> dict[str, Any]:
    failure = f"Failed to deploy compose stack {project_name}"
    if problem := _check_project_name(project_name):
        return CommandResult.failure(failure, problem).to_dict()
    try:
        document = validate_compose_yaml(compose_yaml)
    except ComposeFileError as e:
        logger.warning(f"Rejected compose file for {project_name}: {e}")
        return CommandResult.failure(failure, str(e)).to_dict()

    if working_directory and not Path(working_directory).is_dir():
        return CommandResult.failure(failure, f"Working directory not found: {working_directory}").to_dict()

    with tempfile.TemporaryDirectory(prefix=f"docker-compose-{project_name}-") as temp_dir:
        compose_file = Path(temp_dir) / "docker-compose.yml"
        compose_file.write_text(compose_yaml, encoding="utf-8")

        args = ["-f", str(compose_file)]
        if working_directory:
            args += ["--project-directory", working_directory]
        args.append("up")
        if build:
            args.append("--build")
        if force_recreate:
            args.append("--force-recreate")
        if no_deps:
            args.append("--no-deps")
        if pull:
            args += ["--pull", "always"]
        args.append("-d")

        output = await _run_project_command(
            project_name,
            *args,
            working_dir=working_directory,
            environment={str(k): str(v) for k, v in (environment or {}).items()} or None,
        )

    return _to_result(
        output,
        f"Compose stack {project_name} deployed successfully",
        failure,
        project_name=project_name,
        services=sorted(document["services"]),
    )


@tool(description="Stops and removes a Docker Compose stack")
async def remove_compose_stack(
    project_name: ProjectName,
    remove_volumes: Annotated[bool, "Remove named volumes declared in the compose file"] = False,
    remove_images: Annotated[bool, "Remove images used by services"] = False,
) -> dict[str, Any]:
    if problem := _check_project_name(project_name):
        return CommandResult.failure(f"Failed to remove compose stack {project_name}", problem).to_dict()
    args = ["down"]
    if remove_volumes:
        args.append("--volumes")
    if remove_images:
        args.append("--rmi=all")
    output = await _run_project_command(project_name, *args)
    return _to_result(
        output,
        f"Compose stack {project_name} removed successfully",
        f"Failed to remove compose stack {project_name}",
        project_name=project_name,
    )


def parse_compose_ps(stdout: str) -> list[dict[str, Any]]:
    """`compose ps --format json` prints a JSON array or one object per line depending on version"""
    text = stdout.strip()
    if not text:
        return []
    if text.startswith("["):
        return json.loads(text)
    return [json.loads(line) for line in text.splitlines() if line.strip()]


@tool(description="Lists containers in a Docker Compose stack")
async def list_compose_stack_containers(project_name: ProjectName) -> dict[str, Any]:
    failure = f"Failed to list containers for compose stack {project_name}"
    if problem := _check_project_name(project_name):
        return CommandResult.failure(failure, problem).to_dict()
    output = await _run_project_command(project_name, "ps", "--all", "--format", "json")
    if not output.success:
        return CommandResult.failure(failure, output.output).to_dict()
    try:
        containers = parse_compose_ps(output.stdout)
    except json.JSONDecodeError as e:
        logger.warning(f"Unparseable compose ps output for {project_name}: {e}")
        return CommandResult.ok(f"Retrieved containers for compose stack {project_name}", data=output.stdout).to_dict()
    return CommandResult.ok(
        f"Found {len(containers)} containers in compose stack {project_name}",
        data=[
            {
                "id": c.get("ID"),
                "name": c.get("Name"),
                "service": c.get("Service"),
                "image": c.get("Image"),
                "state": c.get("State"),
                "status": c.get("Status"),
                "ports": c.get("Publishers") or c.get("Ports"),
            }
            for c in containers
        ],
    ).to_dict()


@tool(description="Gets logs from a Docker Compose stack")
async def get_compose_stack_logs(
    project_name: ProjectName,
    service_name: Annotated[str | None, "Only this service (all services when omitted)"] = None,
    tail: Annotated[int | None, "Number of lines to show from the end of the logs"] = None,
    timestamps: Annotated[bool, "Show timestamps"] = False,
) -> dict[str, Any]:
    failure = f"Failed to get logs for compose stack {project_name}"
    if problem := _check_project_name(project_name):
        return CommandResult.failure(failure, problem).to_dict()
    args = ["logs", "--no-color"]
    if tail is not None:
        args += ["--tail", str(tail)]
    if timestamps:
        args.append("--timestamps")
    if service_name:
        args.append(service_name)
    output = await _run_project_command(project_name, *args)
    return _to_result(
        output,
        f"Retrieved logs for compose stack {project_name}",
        failure,
        project_name=project_name,
        service_name=service_name,
    )


async def _lifecycle(project_name: str, action: str, past_tense: str) -> dict[str, Any]:
    failure = f"Failed to {action} compose stack {project_name}"
    if problem := _check_project_name(project_name):
        return CommandResult.failure(failure, problem).to_dict()
    output = await _run_project_command(project_name, action)
    return _to_result(output, f"Compose stack {project_name} {past_tense} successfully", failure, project_name=project_name)


@tool(description="Starts a Docker Compose stack")
async def start_compose_stack(project_name: ProjectName) -> dict[str, Any]:
    return await _lifecycle(project_name, "start", "started")


@tool(description="Stops a Docker Compose stack")
async def stop_compose_stack(project_name: ProjectName) -> dict[str, Any]:
    return await _lifecycle(project_name, "stop", "stopped")


@tool(description="Restarts a Docker Compose stack")
async def restart_compose_stack(project_name: ProjectName) -> dict[str, Any]:
    return await _lifecycle(project_name, "restart", "restarted")


@tool(description="Scales a service in a Docker Compose stack")
async def scale_compose_service(
    project_name: ProjectName,
    service_name: Annotated[str, "Service name to scale"],
    replicas: Annotated[int, "Number of replicas"],
) -> dict[str, Any]:
    failure = f"Failed to scale service {service_name} in compose stack {project_name}"
    if problem := _check_project_name(project_name):
        return CommandResult.failure(failure, problem).to_dict()
    if replicas < 0:
        return CommandResult.failure(failure, "Replica count cannot be negative").to_dict()
    output = await _run_project_command(project_name, "scale", f"{service_name}={replicas}")
    return _to_result(
        output,
        f"Service {service_name} scaled to {replicas} replicas",
        failure,
        project_name=project_name,
        service_name=service_name,
        replicas=replicas,
    )


@tool(description="Executes a command in a running service of a Docker Compose stack")
async def exec_compose_service(
    project_name: ProjectName,
    service_name: Annotated[str, "Service name"],
    command: Annotated[str, "Command to execute"],
    args: Annotated[list[str] | None, "Arguments for the command"] = None,
    interactive: Annotated[bool, "Allocate a TTY (omits -T)"] = False,
) -> dict[str, Any]:
    failure = f"Failed to execute command in service {service_name} of compose stack {project_name}"
    if problem := _check_project_name(project_name):
        return CommandResult.failure(failure, problem).to_dict()
    exec_args = ["exec"]
    if not interactive:
        exec_args.append("-T")
    exec_args += [service_name, command, *(args or [])]
    output = await _run_project_command(project_name, *exec_args)
    return _to_result(
        output,
        f"Command executed in service {service_name}",
        failure,
        project_name=project_name,
        service_name=service_name,
        command=command,
    )
