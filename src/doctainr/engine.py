"""
Synchronization engine: keeps the snapshot store in step with the runtime.

Every public operation schedules an independent asyncio task and returns
it immediately. Production callers drop the task (fire-and-forget); tests
keep it and await it. The engine holds a strong reference to each task
until it finishes, so dropped tasks are never garbage collected mid-flight.

Scheduling:
  - All store writes happen on the event loop thread. The only suspension
    point is the adapter call: blocking adapters (docker-py) run through
    asyncio.to_thread, coroutine adapters are awaited directly.
  - Overlapping refreshes are not de-duplicated. Whichever task the loop
    resumes last performs the last assignment and its result stays.
  - A start/stop dispatches refresh_containers only after the command
    returned successfully; that refresh may race a user refresh.

Failure Policy:
  - Any exception from an adapter call is caught, logged and written to
    last_error as exactly one message. Nothing is retried or classified.
  - A failed refresh leaves the previous collection in place.
  - Successes clear last_error; only start/stop set last_action.
  - There is no timeout: a hung adapter call keeps loading set.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set, Union

from .backend import RuntimeClient, error_message
from .model import ContainerState
from .state import SnapshotStore

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(self, backend: RuntimeClient, store: Optional[SnapshotStore] = None):
        self.backend = backend
        self.store = store or SnapshotStore(docker_host=getattr(backend, "host", None))
        self._tasks: Set[asyncio.Task] = set()

    # --- task plumbing ---

    def _spawn(self, coro: Awaitable[None], name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Dispatched {name}")
        return task

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(func):
            return await func(*args)
        result = await asyncio.to_thread(func, *args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def pending_tasks(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every dispatched task, follow-up refreshes included, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- refresh ---

    async def _refresh(self, resource: str, fetch: Callable[[], Any], apply: Callable[[Any], None]) -> None:
        self.store.set_loading(True)
        try:
            data = await self._call(fetch)
        except Exception as e:
            message = f"Failed to list {resource}: {error_message(e)}"
            logger.warning(message)
            self.store.set_error(message)
        else:
            apply(data)
            self.store.clear_error()
        finally:
            self.store.set_loading(False)

    def refresh_containers(self) -> asyncio.Task:
        return self._spawn(
            self._refresh("containers", self.backend.list_containers, self.store.update_containers),
            "refresh_containers",
        )

    def refresh_images(self) -> asyncio.Task:
        return self._spawn(
            self._refresh("images", self.backend.list_images, self.store.update_images),
            "refresh_images",
        )

    def refresh_volumes(self) -> asyncio.Task:
        return self._spawn(
            self._refresh("volumes", self.backend.list_volumes, self.store.update_volumes),
            "refresh_volumes",
        )

    def refresh_all(self) -> List[asyncio.Task]:
        return [self.refresh_containers(), self.refresh_images(), self.refresh_volumes()]

    # --- commands ---

    async def _command(self, verb: str, done: str, func: Callable[[str], Any], container_id: str) -> None:
        try:
            await self._call(func, container_id)
        except Exception as e:
            message = f"Failed to {verb} container: {error_message(e)}"
            logger.warning(message)
            self.store.set_error(message)
            return
        logger.info(f"{done} container {container_id}")
        self.store.set_action(f"{done} container {container_id}")
        self.store.clear_error()
        self.refresh_containers()

    def start_container(self, container_id: str) -> asyncio.Task:
        return self._spawn(
            self._command("start", "Started", self.backend.start_container, container_id),
            f"start_container:{container_id}",
        )

    def stop_container(self, container_id: str) -> asyncio.Task:
        return self._spawn(
            self._command("stop", "Stopped", self.backend.stop_container, container_id),
            f"stop_container:{container_id}",
        )

    def set_container_state(self, container_id: str, desired: Union[ContainerState, str]) -> asyncio.Task:
        """Route to start or stop; "running"/"stopped" strings are accepted, anything else raises ValueError."""
        if ContainerState(desired) is ContainerState.RUNNING:
            return self.start_container(container_id)
        return self.stop_container(container_id)

    # --- settings page ---

    def record_action(self, message: str) -> None:
        self.store.set_action(message)

    def set_docker_host(self, host: str) -> None:
        # Display only: the adapter read its endpoint once, at construction.
        self.store.set_docker_host(host)

    async def _test_connection(self) -> None:
        try:
            await self._call(self.backend.ping)
        except Exception as e:
            message = f"Docker connection failed: {error_message(e)}"
            logger.warning(message)
            self.store.set_error(message)
            return
        self.store.set_action("Tested Docker connection")
        self.store.clear_error()

    def test_connection(self) -> asyncio.Task:
        return self._spawn(self._test_connection(), "test_connection")
