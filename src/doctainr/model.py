"""
Data models for the doctainr resource snapshot.

This module defines the records the synchronization engine stores and the
helpers that project raw runtime payloads onto them. Records are plain
dataclasses compared by value, so a refresh that returns the same runtime
state yields an equal collection.

Data Classes:
  - ContainerInfo: container row (id, name, image, status text, ports, state)
  - ImageInfo: image row (id, repository, tag, human-readable size)
  - VolumeInfo: volume row (name, driver, mountpoint, size placeholder)
  - OperationalState: loading flag, last error and last action message

Key Rules:
  - ContainerState collapses the runtime's state machine to two values:
    only "running" is RUNNING, everything else is STOPPED
  - Untagged images report "<none>" for both repository and tag
  - Volume size needs a per-volume inspection call, so it is always "--"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

NONE_TAG = "<none>"
NO_PORTS = "--"
SIZE_PLACEHOLDER = "--"


class ContainerState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"

    @property
    def label(self) -> str:
        return "Running" if self is ContainerState.RUNNING else "Stopped"

    @property
    def action_label(self) -> str:
        """Label of the button that moves a container out of this state."""
        return "Stop" if self is ContainerState.RUNNING else "Start"

    def toggled(self) -> "ContainerState":
        if self is ContainerState.RUNNING:
            return ContainerState.STOPPED
        return ContainerState.RUNNING


@dataclass
class ContainerInfo:
    id: str
    name: str
    image: str
    status: str  # free-form, e.g. "Up 2 hours"
    ports: str
    state: ContainerState


@dataclass
class ImageInfo:
    id: str
    repository: str
    tag: str
    size: str


@dataclass
class VolumeInfo:
    name: str
    driver: str
    mountpoint: str
    size: str = SIZE_PLACEHOLDER


@dataclass
class OperationalState:
    loading: bool = False
    last_error: Optional[str] = None
    last_action: Optional[str] = None


def container_state_from_runtime(raw: Optional[str]) -> ContainerState:
    """
    Project a runtime state string onto ContainerState.

    created, restarting, exited, paused, dead and anything unknown all
    collapse to STOPPED.
    """
    if raw and raw.strip().lower() == "running":
        return ContainerState.RUNNING
    return ContainerState.STOPPED


def short_id(full_id: str, length: int = 12) -> str:
    """Shorten a container id or an image digest ("sha256:" prefix kept)."""
    if not full_id:
        return ""
    if full_id.startswith("sha256:"):
        return "sha256:" + full_id[len("sha256:"):][:length]
    return full_id[:length]


def format_size(num_bytes: Optional[float]) -> str:
    """Human readable byte count, 1024 based with one decimal (146.0MB)."""
    size = float(num_bytes or 0)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}TB"


def format_ports(ports: Optional[List[Dict[str, Any]]]) -> str:
    """
    Render the list-endpoint port records as "8080:80, 443/tcp".

    Published ports render as public:private; exposed-only ports as
    private/proto. IPv4 and IPv6 bindings of the same mapping are reported
    twice by the runtime and collapse to one entry.
    """
    if not ports:
        return NO_PORTS
    rendered: List[str] = []
    for port in ports:
        private = port.get("PrivatePort")
        public = port.get("PublicPort")
        if public:
            text = f"{public}:{private}"
        else:
            text = f"{private}/{port.get('Type', 'tcp')}"
        if text not in rendered:
            rendered.append(text)
    return ", ".join(rendered) if rendered else NO_PORTS


def split_repo_tag(repo_tags: Optional[List[str]]) -> Tuple[str, str]:
    """
    Split the first repo tag into (repository, tag).

    The tag separator is the last ':' after the last '/', so a registry
    port (localhost:5000/app) is never mistaken for a tag.
    """
    if not repo_tags:
        return NONE_TAG, NONE_TAG
    ref = repo_tags[0]
    if not ref or ref == f"{NONE_TAG}:{NONE_TAG}":
        return NONE_TAG, NONE_TAG
    slash = ref.rfind("/")
    colon = ref.rfind(":")
    if colon > slash:
        return ref[:colon], ref[colon + 1:]
    return ref, NONE_TAG


def container_from_summary(summary: Dict[str, Any]) -> ContainerInfo:
    names = summary.get("Names") or []
    name = names[0].lstrip("/") if names else short_id(summary.get("Id", ""))
    return ContainerInfo(
        id=short_id(summary.get("Id", "")),
        name=name,
        image=summary.get("Image", ""),
        status=summary.get("Status", ""),
        ports=format_ports(summary.get("Ports")),
        state=container_state_from_runtime(summary.get("State")),
    )


def image_from_summary(summary: Dict[str, Any]) -> ImageInfo:
    repository, tag = split_repo_tag(summary.get("RepoTags"))
    return ImageInfo(
        id=short_id(summary.get("Id", "")),
        repository=repository,
        tag=tag,
        size=format_size(summary.get("Size", 0)),
    )


def volume_from_summary(summary: Dict[str, Any]) -> VolumeInfo:
    return VolumeInfo(
        name=summary.get("Name", ""),
        driver=summary.get("Driver", "local"),
        mountpoint=summary.get("Mountpoint", "n/a"),
    )
