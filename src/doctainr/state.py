"""
Resource snapshot store.

The store holds the current view of the runtime (containers, images,
volumes) and the operational flags the UI shows (loading, last error,
last action). Every field is its own Signal, so observers subscribe to
exactly what they render and writers never take a lock shared across
fields.

Ownership:
  - SyncEngine is the only writer (update_* / set_* methods below)
  - Presentation code reads the signals or call get_snapshot(), and
    subscribes for change notification

Consistency:
  - Collections are replaced wholesale, never patched in place
  - There is no cross-field transaction: get_snapshot() may combine a fresh
    container list with a loading flag from a different moment
  - get_version() grows on every write to any field and is cheap to poll
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .model import ContainerInfo, ImageInfo, OperationalState, VolumeInfo
from .reactive import Signal

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"


def resolve_docker_host(host: Optional[str] = None) -> str:
    """Endpoint to show and connect to: explicit host, then DOCKER_HOST, then the local socket."""
    return host or os.environ.get("DOCKER_HOST") or DEFAULT_DOCKER_HOST


@dataclass
class StoreSnapshot:
    containers: List[ContainerInfo] = field(default_factory=list)
    images: List[ImageInfo] = field(default_factory=list)
    volumes: List[VolumeInfo] = field(default_factory=list)
    operational: OperationalState = field(default_factory=OperationalState)
    docker_host: str = DEFAULT_DOCKER_HOST


class SnapshotStore:
    def __init__(self, docker_host: Optional[str] = None):
        self.containers: Signal[List[ContainerInfo]] = Signal([], name="containers")
        self.images: Signal[List[ImageInfo]] = Signal([], name="images")
        self.volumes: Signal[List[VolumeInfo]] = Signal([], name="volumes")
        self.loading: Signal[bool] = Signal(False, name="loading")
        self.last_error: Signal[Optional[str]] = Signal(None, name="last_error")
        self.last_action: Signal[Optional[str]] = Signal(None, name="last_action")
        self.docker_host: Signal[str] = Signal(
            resolve_docker_host(docker_host),
            name="docker_host",
        )

    def signals(self) -> List[Signal[Any]]:
        return [
            self.containers,
            self.images,
            self.volumes,
            self.loading,
            self.last_error,
            self.last_action,
            self.docker_host,
        ]

    def get_version(self) -> int:
        return sum(s.version for s in self.signals())

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe one callback to every field; returns an unsubscribe function."""
        unsubscribers = [s.subscribe(callback) for s in self.signals()]

        def unsubscribe() -> None:
            for unsub in unsubscribers:
                unsub()

        return unsubscribe

    # Writers (SyncEngine only)

    def update_containers(self, containers: List[ContainerInfo]) -> None:
        self.containers.set(list(containers))

    def update_images(self, images: List[ImageInfo]) -> None:
        self.images.set(list(images))

    def update_volumes(self, volumes: List[VolumeInfo]) -> None:
        self.volumes.set(list(volumes))

    def set_loading(self, loading: bool) -> None:
        self.loading.set(loading)

    def set_error(self, error_msg: str) -> None:
        self.last_error.set(error_msg)

    def clear_error(self) -> None:
        self.last_error.set(None)

    def set_action(self, message: str) -> None:
        self.last_action.set(message)

    def set_docker_host(self, host: str) -> None:
        self.docker_host.set(host)

    # Readers

    def operational_state(self) -> OperationalState:
        return OperationalState(
            loading=self.loading.get(),
            last_error=self.last_error.get(),
            last_action=self.last_action.get(),
        )

    def get_snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            containers=list(self.containers.get()),
            images=list(self.images.get()),
            volumes=list(self.volumes.get()),
            operational=self.operational_state(),
            docker_host=self.docker_host.get(),
        )
