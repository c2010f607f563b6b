"""
Image tools: list, pull, build, tag, push, search, inspect, history, remove, prune
"""

import logging
import pathlib
from typing import Annotated, Any

import docker
import docker.errors

from ..containerspec.resources import format_bytes
from ..runtime.client import execute
from ..runtime.results import CommandResult
from .decorators import tool

logger = logging.getLogger(__name__)

ImageRef = Annotated[str, "Image ID or name"]


def _summarize_image(image: Any) -> dict[str, Any]:
    attrs = image.attrs
    return {
        "id": image.short_id,
        "tags": image.tags,
        "created": attrs.get("Created"),
        "size": format_bytes(attrs.get("Size", 0)),
        "labels": image.labels,
    }


@tool(description="Lists Docker images with filtering options")
async def list_images(
    all: Annotated[bool, "Show all images (default hides intermediate images)"] = False,
    dangling: Annotated[bool, "Show dangling images only"] = False,
    labels: Annotated[dict[str, str] | None, "Filter images by labels"] = None,
    reference: Annotated[str | None, "Filter by reference pattern (e.g. 'nginx:*')"] = None,
) -> dict[str, Any]:
    filters: dict[str, Any] = {}
    if dangling:
        filters["dangling"] = True
    if labels:
        filters["label"] = [f"{k}={v}" for k, v in labels.items()]
    if reference:
        filters["reference"] = reference

    def _list(client: docker.DockerClient) -> CommandResult:
        images = client.images.list(all=all, filters=filters or None)
        return CommandResult.ok(f"Found {len(images)} images", data=[_summarize_image(i) for i in images])

    return await execute("list images", _list)


@tool(description="Pulls a Docker image from a registry")
async def pull_image(
    image_name: Annotated[str, "Image name (e.g., 'nginx', 'ubuntu')"],
    tag: Annotated[str | None, "Image tag (defaults to 'latest')"] = None,
    platform: Annotated[str | None, "Platform (e.g., 'linux/amd64')"] = None,
) -> dict[str, Any]:
    tag = tag or "latest"

    def _pull(client: docker.DockerClient) -> CommandResult:
        image = client.images.pull(image_name, tag=tag, platform=platform)
        logger.info(f"Pulled image {image_name}:{tag} ({image.short_id})")
        return CommandResult.ok(f"Successfully pulled image {image_name}:{tag}", data=_summarize_image(image))

    return await execute(f"pull image {image_name}:{tag}", _pull)


@tool(description="Builds a Docker image from a Dockerfile")
async def build_image(
    dockerfile_path: Annotated[str, "Path to the Dockerfile"],
    tag: Annotated[str | None, "Tag to apply to the built image (e.g. 'my-app:latest')"] = None,
    build_context: Annotated[str | None, "Build context directory (defaults to the Dockerfile's directory)"] = None,
    build_args: Annotated[dict[str, str] | None, "Build arguments"] = None,
    platform: Annotated[str | None, "Target platform (e.g. 'linux/amd64')"] = None,
) -> dict[str, Any]:
    dockerfile = pathlib.Path(dockerfile_path).expanduser().resolve()
    if not dockerfile.is_file():
        return CommandResult.failure("Failed to build image", f"Dockerfile not found: {dockerfile_path}").to_dict()

    context = pathlib.Path(build_context).expanduser().resolve() if build_context else dockerfile.parent
    if not context.is_dir():
        return CommandResult.failure("Failed to build image", f"Build context is not a directory: {context}").to_dict()

    try:
        dockerfile_arg = str(dockerfile.relative_to(context))
    except ValueError:
        # outside the context: the daemon accepts an absolute path in that case
        dockerfile_arg = str(dockerfile)

    def _build(client: docker.DockerClient) -> CommandResult:
        try:
            image, log_stream = client.images.build(
                path=str(context),
                dockerfile=dockerfile_arg,
                tag=tag,
                buildargs={str(k): str(v) for k, v in (build_args or {}).items()} or None,
                platform=platform,
                rm=True,
            )
        except docker.errors.BuildError as e:
            build_log = [chunk.get("stream", "").rstrip() for chunk in e.build_log if chunk.get("stream")]
            return CommandResult.failure("Image build failed", e.msg, data={"log": build_log[-50:]})
        build_log = [chunk["stream"].rstrip() for chunk in log_stream if chunk.get("stream")]
        logger.info(f"Built image {tag or image.short_id} from {dockerfile}")
        return CommandResult.ok(
            f"Successfully built image {tag or image.short_id}",
            data={"image": _summarize_image(image), "log": build_log[-50:]},
        )

    return await execute(f"build image from {dockerfile_path}", _build)


@tool(description="Removes a Docker image")
async def remove_image(
    image_id: ImageRef,
    force: Annotated[bool, "Force removal of the image"] = False,
    no_prune: Annotated[bool, "Do not delete untagged parent images"] = False,
) -> dict[str, Any]:
    def _remove(client: docker.DockerClient) -> CommandResult:
        client.images.remove(image_id, force=force, noprune=no_prune)
        return CommandResult.ok(f"Image {image_id} removed successfully")

    return await execute(f"remove image {image_id}", _remove)


@tool(description="Tags a Docker image")
async def tag_image(
    source_image: Annotated[str, "Source image name or ID"],
    target_image: Annotated[str, "Target image name with optional tag (e.g. 'registry/app:1.0')"],
) -> dict[str, Any]:
    repository, tag = _split_reference(target_image)

    def _tag(client: docker.DockerClient) -> CommandResult:
        client.images.get(source_image).tag(repository, tag=tag)
        return CommandResult.ok(f"Tagged {source_image} as {repository}:{tag}")

    return await execute(f"tag image {source_image}", _tag)


def _split_reference(reference: str) -> tuple[str, str]:
    """'repo/name:tag' -> ('repo/name', 'tag'); a ':' before the last '/' is a registry port"""
    name, _, last = reference.rpartition("/")
    if ":" in last:
        last, tag = last.split(":", 1)
    else:
        tag = "latest"
    return (f"{name}/{last}" if name else last), tag


@tool(description="Pushes an image to a registry")
async def push_image(
    image_name: Annotated[str, "Image repository name"],
    tag: Annotated[str | None, "Image tag (defaults to 'latest')"] = None,
    username: Annotated[str | None, "Registry username"] = None,
    password: Annotated[str | None, "Registry password or token"] = None,
) -> dict[str, Any]:
    tag = tag or "latest"
    auth_config = {"username": username, "password": password} if username and password else None

    def _push(client: docker.DockerClient) -> CommandResult:
        errors: list[str] = []
        statuses: list[str] = []
        for line in client.images.push(image_name, tag=tag, auth_config=auth_config, stream=True, decode=True):
            if "error" in line:
                errors.append(line.get("error", ""))
            elif line.get("status"):
                statuses.append(line["status"])
        if errors:
            return CommandResult.failure(f"Failed to push image {image_name}:{tag}", "; ".join(errors))
        return CommandResult.ok(f"Successfully pushed image {image_name}:{tag}", data={"status": statuses[-5:]})

    return await execute(f"push image {image_name}:{tag}", _push)


@tool(description="Searches for images in Docker Hub")
async def search_images(
    term: Annotated[str, "Search term"],
    limit: Annotated[int, "Maximum number of results"] = 25,
) -> dict[str, Any]:
    def _search(client: docker.DockerClient) -> CommandResult:
        results = client.images.search(term, limit=limit)
        data = [
            {
                "name": r.get("name"),
                "description": r.get("description"),
                "stars": r.get("star_count"),
                "official": r.get("is_official", False),
                "automated": r.get("is_automated", False),
            }
            for r in results
        ]
        return CommandResult.ok(f"Found {len(data)} images matching '{term}'", data=data)

    return await execute(f"search images for '{term}'", _search)


@tool(description="Inspects a Docker image and returns detailed information")
async def inspect_image(image_id: ImageRef) -> dict[str, Any]:
    def _inspect(client: docker.DockerClient) -> CommandResult:
        return CommandResult.ok(f"Image {image_id} inspected", data=client.images.get(image_id).attrs)

    return await execute(f"inspect image {image_id}", _inspect)


@tool(description="Gets the layer history of a Docker image")
async def get_image_history(image_id: ImageRef) -> dict[str, Any]:
    def _history(client: docker.DockerClient) -> CommandResult:
        layers = client.images.get(image_id).history()
        data = [
            {
                "id": layer.get("Id"),
                "created": layer.get("Created"),
                "created_by": layer.get("CreatedBy"),
                "size": format_bytes(layer.get("Size", 0)),
                "tags": layer.get("Tags") or [],
            }
            for layer in layers
        ]
        return CommandResult.ok(f"Image {image_id} has {len(data)} layers", data=data)

    return await execute(f"get history for image {image_id}", _history)


@tool(description="Removes unused Docker images")
async def prune_images(
    dangling: Annotated[bool, "Remove only dangling images"] = True,
    all: Annotated[bool, "Remove all unused images, not just dangling ones"] = False,
) -> dict[str, Any]:
    filters = {"dangling": dangling and not all}

    def _prune(client: docker.DockerClient) -> CommandResult:
        report = client.images.prune(filters=filters)
        deleted = report.get("ImagesDeleted") or []
        reclaimed = report.get("SpaceReclaimed", 0)
        return CommandResult.ok(
            f"Removed {len(deleted)} images, reclaimed {format_bytes(reclaimed)}",
            data={"deleted": deleted, "space_reclaimed": reclaimed},
        )

    return await execute("prune images", _prune)
