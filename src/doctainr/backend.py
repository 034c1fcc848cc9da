"""
Docker API wrapper used by the synchronization engine.

This module is the runtime client adapter: a thin layer over the
docker-py library that lists containers, images and volumes, starts and
stops containers, and pings the daemon. It converts raw API payloads to
the records in model.py and nothing more.

Unlike a UI-facing wrapper, failures are not swallowed here: the engine
must see every failure so it can surface it through last_error. Every
docker-py exception is logged and re-raised as BackendError carrying the
daemon's human readable explanation.

Key Classes:
  - RuntimeClient: the capability set the engine consumes
  - DockerBackend: docker-py implementation of RuntimeClient
  - BackendError / RuntimeUnavailableError: adapter failures

Connection:
  - DockerBackend(host) connects to the given endpoint, otherwise uses
    docker.from_env() (DOCKER_HOST, DOCKER_TLS_VERIFY, ...)
  - Construction never contacts the daemon (pinned API version), so an
    unreachable daemon surfaces on the first call as BackendError
  - A bad endpoint or environment leaves the client None and every call
    raises RuntimeUnavailableError instead

Dependencies:
  - docker>=7.0.0 (docker-py client)
"""

import functools
import logging
from typing import Any, Callable, List, Optional, Protocol

import docker
from docker.constants import DEFAULT_DOCKER_API_VERSION
from docker.errors import APIError, DockerException

from .model import (
    ContainerInfo,
    ImageInfo,
    VolumeInfo,
    container_from_summary,
    image_from_summary,
    volume_from_summary,
)
from .state import resolve_docker_host

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Docker service not available"

# Pinned, so constructing a client sends no request to the daemon.
API_VERSION = DEFAULT_DOCKER_API_VERSION
CLIENT_TIMEOUT = 10


class BackendError(Exception):
    """A runtime call failed; message is fit to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class RuntimeUnavailableError(BackendError):
    def __init__(self, message: str = UNAVAILABLE_MESSAGE):
        super().__init__(message)


class RuntimeClient(Protocol):
    """
    Capabilities the engine needs from a container runtime.

    Methods may be plain functions (run in a worker thread) or coroutine
    functions (awaited on the event loop). All of them may raise.
    """

    def list_containers(self) -> List[ContainerInfo]: ...

    def list_images(self) -> List[ImageInfo]: ...

    def list_volumes(self) -> List[VolumeInfo]: ...

    def start_container(self, container_id: str) -> None: ...

    def stop_container(self, container_id: str) -> None: ...

    def ping(self) -> None: ...


def error_message(exc: BaseException) -> str:
    """Best human readable text for a docker-py exception."""
    explanation = getattr(exc, "explanation", None)
    if explanation:
        if isinstance(explanation, bytes):
            explanation = explanation.decode("utf-8", errors="replace")
        return str(explanation).strip()
    return str(exc) or exc.__class__.__name__


def docker_errors(func: Callable) -> Callable:
    """
    Decorator for Docker API methods that normalizes failures.

    Raises RuntimeUnavailableError when there is no client, and re-raises
    any other exception as BackendError after logging it.

    Usage:
        @docker_errors
        def list_containers(self) -> List[ContainerInfo]:
            ...
    """
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> Any:
        if self.client is None:
            raise RuntimeUnavailableError()
        try:
            return func(self, *args, **kwargs)
        except BackendError:
            raise
        except Exception as e:
            logger.error(f"Docker operation failed in {func.__name__}: {e}", exc_info=True)
            raise BackendError(error_message(e)) from e
    return wrapper


class DockerBackend:
    def __init__(self, host: Optional[str] = None):
        self.host = resolve_docker_host(host)
        self.client: Optional[docker.DockerClient] = None
        try:
            if host:
                self.client = docker.DockerClient(base_url=host, version=API_VERSION, timeout=CLIENT_TIMEOUT)
            else:
                self.client = docker.from_env(version=API_VERSION, timeout=CLIENT_TIMEOUT)
        except Exception as e:
            logger.error(f"Failed to connect to Docker at {self.host}: {e}")
            self.client = None

    @property
    def available(self) -> bool:
        return self.client is not None

    @docker_errors
    def list_containers(self) -> List[ContainerInfo]:
        # Low-level API: summaries carry Status ("Up 2 hours") and Ports.
        raw = self.client.api.containers(all=True)
        return [container_from_summary(c) for c in raw]

    @docker_errors
    def list_images(self) -> List[ImageInfo]:
        raw = self.client.api.images()
        return [image_from_summary(i) for i in raw]

    @docker_errors
    def list_volumes(self) -> List[VolumeInfo]:
        raw = self.client.api.volumes() or {}
        return [volume_from_summary(v) for v in raw.get("Volumes") or []]

    @docker_errors
    def start_container(self, container_id: str) -> None:
        self.client.api.start(container_id)

    @docker_errors
    def stop_container(self, container_id: str) -> None:
        self.client.api.stop(container_id)

    @docker_errors
    def ping(self) -> None:
        if not self.client.ping():
            raise BackendError(f"Docker daemon at {self.host} did not answer")

    def close(self) -> None:
        if self.client is not None:
            try:
                self.client.close()
            except (APIError, DockerException, OSError) as e:
                logger.warning(f"Error closing Docker client: {e}")
