from collections import defaultdict

import pytest

from doctainr.engine import SyncEngine
from doctainr.model import ContainerInfo, ContainerState, ImageInfo, VolumeInfo


class FakeRuntime:
    """Coroutine-based runtime double that records every call in order."""

    def __init__(self):
        self.containers = []
        self.images = []
        self.volumes = []
        self.calls = defaultdict(int)
        self.log = []
        self.failures = {}

    def fail(self, op, exc):
        self.failures[op] = exc

    def _record(self, op, *args):
        self.calls[op] += 1
        self.log.append((op,) + args)
        if op in self.failures:
            raise self.failures[op]

    async def list_containers(self):
        self._record("list_containers")
        return list(self.containers)

    async def list_images(self):
        self._record("list_images")
        return list(self.images)

    async def list_volumes(self):
        self._record("list_volumes")
        return list(self.volumes)

    async def start_container(self, container_id):
        self._record("start_container", container_id)

    async def stop_container(self, container_id):
        self._record("stop_container", container_id)

    async def ping(self):
        self._record("ping")


def make_container(id="abc123", name="web", state=ContainerState.RUNNING):
    return ContainerInfo(
        id=id,
        name=name,
        image="nginx:latest",
        status="Up 2 hours" if state is ContainerState.RUNNING else "Exited (0) 2 hours ago",
        ports="8080:80",
        state=state,
    )


def make_image(id="sha256:aa11", repository="nginx", tag="1.25"):
    return ImageInfo(id=id, repository=repository, tag=tag, size="146.0MB")


def make_volume(name="postgres-data"):
    return VolumeInfo(name=name, driver="local", mountpoint=f"/var/lib/docker/volumes/{name}/_data")


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def engine(runtime):
    return SyncEngine(runtime)
