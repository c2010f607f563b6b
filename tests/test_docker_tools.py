"""
Tests for the image, network, volume and system tools
"""

from unittest.mock import AsyncMock, MagicMock, patch

import docker.errors
import pytest

from docker_mcp_server.runtime.cli import CommandOutput
from docker_mcp_server.tools import images, networks, system, volumes


def _image(short_id="sha256:abc", tags=None, size=2048):
    image = MagicMock()
    image.short_id = short_id
    image.tags = tags or ["nginx:latest"]
    image.labels = {}
    image.attrs = {"Created": "2024-01-01T00:00:00Z", "Size": size}
    return image


# images


@pytest.mark.asyncio
async def test_list_images(docker_client):
    docker_client.images.list.return_value = [_image()]

    result = await images.list_images(dangling=True, labels={"app": "web"}, reference="nginx:*")

    assert result["message"] == "Found 1 images"
    assert result["data"][0]["size"] == "2.0 KB"
    docker_client.images.list.assert_called_once_with(
        all=False, filters={"dangling": True, "label": ["app=web"], "reference": "nginx:*"}
    )


@pytest.mark.asyncio
async def test_pull_image_defaults_to_latest(docker_client):
    docker_client.images.pull.return_value = _image()

    result = await images.pull_image("nginx")

    assert result["message"] == "Successfully pulled image nginx:latest"
    docker_client.images.pull.assert_called_once_with("nginx", tag="latest", platform=None)


@pytest.mark.asyncio
async def test_pull_image_not_found(docker_client):
    docker_client.images.pull.side_effect = docker.errors.ImageNotFound("x", explanation="manifest unknown")

    result = await images.pull_image("nope", tag="1.0")

    assert result["success"] is False
    assert result["message"] == "Failed to pull image nope:1.0"
    assert result["error_message"] == "Image not found: manifest unknown"


@pytest.mark.asyncio
async def test_build_image(docker_client, tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_text("FROM alpine\n")
    docker_client.images.build.return_value = (_image(), [{"stream": "Step 1/1 : FROM alpine\n"}, {"aux": {}}])

    result = await images.build_image(str(dockerfile), tag="app:1.0", build_args={"VERSION": 2})

    assert result["success"] is True
    assert result["data"]["log"] == ["Step 1/1 : FROM alpine"]
    kwargs = docker_client.images.build.call_args.kwargs
    assert kwargs["path"] == str(tmp_path.resolve())
    assert kwargs["dockerfile"] == "Dockerfile"
    assert kwargs["buildargs"] == {"VERSION": "2"}


@pytest.mark.asyncio
async def test_build_image_missing_dockerfile(docker_client, tmp_path):
    result = await images.build_image(str(tmp_path / "Dockerfile"))

    assert result["success"] is False
    assert result["error_message"].startswith("Dockerfile not found")
    docker_client.images.build.assert_not_called()


@pytest.mark.asyncio
async def test_build_image_build_error(docker_client, tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_text("FROM nothing\n")
    docker_client.images.build.side_effect = docker.errors.BuildError(
        "pull access denied", [{"stream": "Step 1/1 : FROM nothing\n"}]
    )

    result = await images.build_image(str(dockerfile))

    assert result["success"] is False
    assert result["message"] == "Image build failed"
    assert result["error_message"] == "pull access denied"
    assert result["data"]["log"] == ["Step 1/1 : FROM nothing"]


@pytest.mark.asyncio
async def test_remove_image(docker_client):
    result = await images.remove_image("nginx", force=True)

    assert result["success"] is True
    docker_client.images.remove.assert_called_once_with("nginx", force=True, noprune=False)


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("app", ("app", "latest")),
        ("app:1.0", ("app", "1.0")),
        ("localhost:5000/team/app", ("localhost:5000/team/app", "latest")),
        ("localhost:5000/team/app:2", ("localhost:5000/team/app", "2")),
    ],
)
def test_split_reference(reference, expected):
    assert images._split_reference(reference) == expected


@pytest.mark.asyncio
async def test_tag_image(docker_client):
    result = await images.tag_image("nginx", "registry.local:5000/web:1.2")

    assert result["message"] == "Tagged nginx as registry.local:5000/web:1.2"
    docker_client.images.get.return_value.tag.assert_called_once_with("registry.local:5000/web", tag="1.2")


@pytest.mark.asyncio
async def test_push_image_with_credentials(docker_client):
    docker_client.images.push.return_value = iter([{"status": "Pushing"}, {"status": "Pushed"}])

    result = await images.push_image("team/app", username="me", password="secret")

    assert result["success"] is True
    assert result["data"]["status"] == ["Pushing", "Pushed"]
    docker_client.images.push.assert_called_once_with(
        "team/app", tag="latest", auth_config={"username": "me", "password": "secret"}, stream=True, decode=True
    )


@pytest.mark.asyncio
async def test_push_image_stream_error(docker_client):
    docker_client.images.push.return_value = iter([{"status": "Preparing"}, {"error": "denied: requested access"}])

    result = await images.push_image("team/app", tag="1.0")

    assert result["success"] is False
    assert result["error_message"] == "denied: requested access"


@pytest.mark.asyncio
async def test_search_images(docker_client):
    docker_client.images.search.return_value = [
        {"name": "nginx", "description": "web server", "star_count": 100, "is_official": True}
    ]

    result = await images.search_images("nginx", limit=5)

    assert result["data"][0] == {
        "name": "nginx",
        "description": "web server",
        "stars": 100,
        "official": True,
        "automated": False,
    }
    docker_client.images.search.assert_called_once_with("nginx", limit=5)


@pytest.mark.asyncio
async def test_get_image_history(docker_client):
    docker_client.images.get.return_value.history.return_value = [
        {"Id": "sha256:1", "Created": 1, "CreatedBy": "/bin/sh -c #(nop) CMD", "Size": 0, "Tags": None}
    ]

    result = await images.get_image_history("nginx")

    assert result["message"] == "Image nginx has 1 layers"
    assert result["data"][0]["tags"] == []


@pytest.mark.asyncio
async def test_prune_images(docker_client):
    docker_client.images.prune.return_value = {"ImagesDeleted": [{"Deleted": "sha256:1"}], "SpaceReclaimed": 1024}

    result = await images.prune_images(all=True)

    assert result["message"] == "Removed 1 images, reclaimed 1.0 KB"
    docker_client.images.prune.assert_called_once_with(filters={"dangling": False})


# networks


def test_build_ipam():
    ipam = networks.build_ipam("172.28.5.0/24", "172.28.5.1")

    pool = ipam["Config"][0]
    assert pool["Subnet"] == "172.28.5.0/24"
    assert pool["Gateway"] == "172.28.5.1"
    assert networks.build_ipam(None, None) is None


@pytest.mark.parametrize(
    "subnet, gateway",
    [(None, "10.0.0.1"), ("10.0.0.0/24", "10.0.1.1"), ("not-a-subnet", None), ("10.0.0.0/24", "bogus")],
)
def test_build_ipam_invalid(subnet, gateway):
    with pytest.raises(ValueError):
        networks.build_ipam(subnet, gateway)


@pytest.mark.asyncio
async def test_create_network(docker_client):
    docker_client.networks.create.return_value.id = "net123"

    result = await networks.create_network("backend", internal=True, subnet="10.10.0.0/16", labels={"tier": "db"})

    assert result["data"] == {"id": "net123"}
    args, kwargs = docker_client.networks.create.call_args
    assert args == ("backend",)
    assert kwargs["driver"] == "bridge"
    assert kwargs["internal"] is True
    assert kwargs["ipam"]["Config"][0]["Subnet"] == "10.10.0.0/16"
    assert kwargs["labels"] == {"tier": "db"}
    assert kwargs["options"] is None


@pytest.mark.asyncio
async def test_create_network_bad_gateway(docker_client):
    result = await networks.create_network("backend", subnet="10.10.0.0/16", gateway="192.168.0.1")

    assert result["success"] is False
    assert "not inside subnet" in result["error_message"]
    docker_client.networks.create.assert_not_called()


@pytest.mark.asyncio
async def test_list_networks(docker_client):
    network = MagicMock()
    network.short_id = "abc"
    network.name = "bridge"
    network.attrs = {"Driver": "bridge", "IPAM": {"Config": [{"Subnet": "172.17.0.0/16"}]}}
    docker_client.networks.list.return_value = [network]

    result = await networks.list_networks(driver="bridge")

    assert result["data"][0]["subnets"] == ["172.17.0.0/16"]
    docker_client.networks.list.assert_called_once_with(filters={"driver": "bridge"})


@pytest.mark.asyncio
async def test_connect_and_disconnect_network(docker_client):
    network = docker_client.networks.get.return_value

    await networks.connect_network("backend", "web", aliases=["api"], ipv4_address="10.10.0.5")
    await networks.disconnect_network("backend", "web", force=True)

    network.connect.assert_called_once_with("web", aliases=["api"], ipv4_address="10.10.0.5", ipv6_address=None)
    network.disconnect.assert_called_once_with("web", force=True)


@pytest.mark.asyncio
async def test_remove_network_not_found(docker_client):
    docker_client.networks.get.side_effect = docker.errors.NotFound("x", explanation="network ghost not found")

    result = await networks.remove_network("ghost")

    assert result["error_message"] == "Not found: network ghost not found"


@pytest.mark.asyncio
async def test_prune_networks(docker_client):
    docker_client.networks.prune.return_value = {"NetworksDeleted": ["a", "b"]}

    result = await networks.prune_networks()

    assert result["message"] == "Removed 2 networks"


# volumes


@pytest.mark.asyncio
async def test_create_volume(docker_client):
    volume = docker_client.volumes.create.return_value
    volume.name = "pgdata"
    volume.attrs = {"Driver": "local", "Mountpoint": "/var/lib/docker/volumes/pgdata/_data"}

    result = await volumes.create_volume("pgdata", labels={"app": "db"})

    assert result["message"] == "Volume pgdata created successfully"
    assert result["data"]["driver"] == "local"
    docker_client.volumes.create.assert_called_once_with(
        name="pgdata", driver="local", driver_opts={}, labels={"app": "db"}
    )


@pytest.mark.asyncio
async def test_list_volumes_dangling(docker_client):
    docker_client.volumes.list.return_value = []

    result = await volumes.list_volumes(dangling=True)

    assert result["message"] == "Found 0 volumes"
    docker_client.volumes.list.assert_called_once_with(filters={"dangling": True})


@pytest.mark.asyncio
async def test_remove_volume_in_use(docker_client):
    docker_client.volumes.get.return_value.remove.side_effect = docker.errors.APIError(
        "conflict", explanation="volume is in use"
    )

    result = await volumes.remove_volume("pgdata")

    assert result["success"] is False
    assert result["error_message"] == "Docker API error: volume is in use"


@pytest.mark.asyncio
async def test_prune_volumes(docker_client):
    docker_client.volumes.prune.return_value = {"VolumesDeleted": ["a"], "SpaceReclaimed": 0}

    result = await volumes.prune_volumes()

    assert result["data"] == {"deleted": ["a"], "space_reclaimed": 0}


# system


@pytest.mark.asyncio
async def test_ping_docker(docker_client):
    result = await system.ping_docker()

    assert result["message"] == "Docker daemon is reachable"
    docker_client.ping.assert_called_once()


@pytest.mark.asyncio
async def test_ping_docker_daemon_down():
    with patch(
        "docker_mcp_server.runtime.client.docker.from_env",
        side_effect=docker.errors.DockerException("Connection refused"),
    ):
        result = await system.ping_docker()

    assert result["success"] is False
    assert result["error_message"] == "Docker daemon unavailable: Connection refused"


@pytest.mark.asyncio
async def test_get_docker_info_and_version(docker_client):
    docker_client.info.return_value = {"Containers": 3}
    docker_client.version.return_value = {"Version": "25.0.0"}

    assert (await system.get_docker_info())["data"] == {"Containers": 3}
    assert (await system.get_docker_version())["data"] == {"Version": "25.0.0"}


def test_summarize_disk_usage():
    df = {
        "LayersSize": 2048,
        "Images": [{"Size": 2048}],
        "Containers": [{"SizeRw": 1024}, {"SizeRw": None}],
        "Volumes": [{"UsageData": {"Size": 1024}}, {"UsageData": {"Size": -1}}],
        "BuildCache": None,
    }

    summary = system.summarize_disk_usage(df)

    assert summary["images"] == {"count": 1, "size": "2.0 KB"}
    assert summary["containers"] == {"count": 2, "size": "1.0 KB"}
    assert summary["volumes"] == {"count": 2, "size": "1.0 KB"}
    assert summary["build_cache"] == {"count": 0, "size": "0.0 B"}
    assert summary["total"] == "4.0 KB"


@pytest.mark.asyncio
async def test_prune_system_with_volumes(docker_client):
    docker_client.containers.prune.return_value = {"ContainersDeleted": ["c1"], "SpaceReclaimed": 1024}
    docker_client.images.prune.return_value = {"ImagesDeleted": [], "SpaceReclaimed": 0}
    docker_client.networks.prune.return_value = {"NetworksDeleted": None}
    docker_client.volumes.prune.return_value = {"VolumesDeleted": ["v1", "v2"], "SpaceReclaimed": 1024}

    result = await system.prune_system(volumes=True)

    assert result["data"] == {"containers": 1, "images": 0, "networks": 0, "volumes": 2, "space_reclaimed": 2048}
    assert result["message"].endswith("reclaimed 2.0 KB")
    docker_client.images.prune.assert_called_once_with(filters={"dangling": True})


@pytest.mark.asyncio
async def test_prune_system_keeps_volumes_by_default(docker_client):
    docker_client.containers.prune.return_value = {}
    docker_client.images.prune.return_value = {}
    docker_client.networks.prune.return_value = {}

    result = await system.prune_system()

    assert "volumes" not in result["data"]
    docker_client.volumes.prune.assert_not_called()


@pytest.mark.asyncio
async def test_get_docker_processes():
    output = CommandOutput(success=True, exit_code=0, stdout='{"Name": "web", "CPUPerc": "0.5%"}\nnot json\n')
    with patch("docker_mcp_server.tools.system.run_docker_command", AsyncMock(return_value=output)) as mock_run:
        result = await system.get_docker_processes()

    assert result["data"] == [{"Name": "web", "CPUPerc": "0.5%"}]
    mock_run.assert_awaited_once_with(["stats", "--no-stream", "--format", "{{json .}}"])


@pytest.mark.asyncio
async def test_get_docker_processes_failure():
    output = CommandOutput(success=False, exit_code=1, stderr="Cannot connect to the Docker daemon")
    with patch("docker_mcp_server.tools.system.run_docker_command", AsyncMock(return_value=output)):
        result = await system.get_docker_processes()

    assert result["success"] is False
    assert result["error_message"] == "Cannot connect to the Docker daemon"
