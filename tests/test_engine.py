import asyncio
from unittest.mock import MagicMock

import pytest

from doctainr.backend import BackendError, DockerBackend
from doctainr.engine import SyncEngine
from doctainr.model import ContainerState

from conftest import make_container, make_image, make_volume


@pytest.mark.asyncio
async def test_refresh_containers_replaces_collection_and_clears_error(engine, runtime):
    runtime.containers = [make_container()]
    engine.store.set_error("old failure")

    await engine.refresh_containers()

    assert engine.store.containers.get() == [make_container()]
    assert engine.store.last_error.get() is None
    assert engine.store.loading.get() is False


@pytest.mark.asyncio
async def test_refresh_is_idempotent_for_unchanged_runtime(engine, runtime):
    runtime.containers = [make_container("abc123", "web"), make_container("def456", "db", ContainerState.STOPPED)]

    await engine.refresh_containers()
    first = engine.store.containers.get()
    await engine.refresh_containers()
    second = engine.store.containers.get()

    assert first == second
    assert runtime.calls["list_containers"] == 2


@pytest.mark.asyncio
async def test_failed_refresh_keeps_existing_data(engine, runtime):
    c1, c2 = make_container("c1", "one"), make_container("c2", "two")
    runtime.containers = [c1, c2]
    await engine.refresh_containers()

    runtime.fail("list_containers", BackendError("connection refused"))
    await engine.refresh_containers()

    assert engine.store.containers.get() == [c1, c2]
    assert engine.store.last_error.get() == "Failed to list containers: connection refused"
    assert engine.store.loading.get() is False


@pytest.mark.asyncio
async def test_success_after_failure_clears_error(engine, runtime):
    runtime.fail("list_images", BackendError("boom"))
    await engine.refresh_images()
    assert engine.store.last_error.get()

    del runtime.failures["list_images"]
    runtime.images = [make_image()]
    await engine.refresh_images()

    assert engine.store.last_error.get() is None
    assert engine.store.images.get() == [make_image()]


@pytest.mark.asyncio
async def test_loading_is_set_while_refresh_in_flight(engine, runtime):
    release = asyncio.Event()

    async def slow_volumes():
        await release.wait()
        return [make_volume()]

    runtime.list_volumes = slow_volumes
    task = engine.refresh_volumes()
    await asyncio.sleep(0)

    assert engine.store.loading.get() is True
    assert engine.store.volumes.get() == []

    release.set()
    await task

    assert engine.store.loading.get() is False
    assert engine.store.volumes.get() == [make_volume()]


def _gated_images(runtime, responses):
    async def list_images():
        release, images = responses.pop(0)
        await release.wait()
        return images

    runtime.list_images = list_images


@pytest.mark.asyncio
async def test_overlapping_image_refreshes_last_completion_wins(engine, runtime):
    img_a, img_b = make_image("sha256:aa", "a"), make_image("sha256:bb", "b")
    first_release, second_release = asyncio.Event(), asyncio.Event()
    _gated_images(runtime, [(first_release, [img_a]), (second_release, [img_b])])

    first = engine.refresh_images()
    second = engine.refresh_images()
    await asyncio.sleep(0)

    first_release.set()
    await first
    second_release.set()
    await second

    assert engine.store.images.get() == [img_b]


@pytest.mark.asyncio
async def test_earlier_issued_refresh_completing_last_wins(engine, runtime):
    img_a, img_b = make_image("sha256:aa", "a"), make_image("sha256:bb", "b")
    first_release, second_release = asyncio.Event(), asyncio.Event()
    _gated_images(runtime, [(first_release, [img_b]), (second_release, [img_a])])

    first = engine.refresh_images()
    second = engine.refresh_images()
    await asyncio.sleep(0)

    second_release.set()
    await second
    assert engine.store.images.get() == [img_a]

    first_release.set()
    await first
    assert engine.store.images.get() == [img_b]


@pytest.mark.asyncio
async def test_refresh_all_dispatches_three_independent_tasks(engine, runtime):
    runtime.containers = [make_container()]
    runtime.images = [make_image()]
    runtime.volumes = [make_volume()]

    tasks = engine.refresh_all()
    assert len(tasks) == 3
    await asyncio.gather(*tasks)

    snap = engine.store.get_snapshot()
    assert snap.containers == [make_container()]
    assert snap.images == [make_image()]
    assert snap.volumes == [make_volume()]
    assert snap.operational.last_error is None


@pytest.mark.asyncio
async def test_refresh_all_later_success_overwrites_earlier_error(engine, runtime):
    runtime.fail("list_containers", BackendError("permission denied"))
    images_release, volumes_release = asyncio.Event(), asyncio.Event()

    async def slow_images():
        await images_release.wait()
        return [make_image()]

    async def slow_volumes():
        await volumes_release.wait()
        return []

    runtime.list_images = slow_images
    runtime.list_volumes = slow_volumes
    containers_task, images_task, volumes_task = engine.refresh_all()
    await containers_task
    assert engine.store.last_error.get() == "Failed to list containers: permission denied"

    images_release.set()
    await images_task
    assert engine.store.last_error.get() is None
    assert engine.store.images.get() == [make_image()]

    volumes_release.set()
    await volumes_task
    assert engine.store.last_error.get() is None
    assert engine.store.loading.get() is False


@pytest.mark.asyncio
async def test_start_container_sets_action_and_triggers_refresh(engine, runtime):
    runtime.containers = [make_container()]

    await engine.start_container("abc123")
    await engine.wait_idle()

    assert engine.store.last_action.get() == "Started container abc123"
    assert engine.store.last_error.get() is None
    assert runtime.calls["list_containers"] == 1
    assert runtime.log == [("start_container", "abc123"), ("list_containers",)]
    assert engine.store.containers.get() == [make_container()]


@pytest.mark.asyncio
async def test_stop_failure_records_error_without_refresh(engine, runtime):
    runtime.containers = [make_container()]
    await engine.refresh_containers()
    runtime.fail("stop_container", BackendError("no such container"))

    await engine.stop_container("abc123")
    await engine.wait_idle()

    assert engine.store.last_error.get() == "Failed to stop container: no such container"
    assert engine.store.containers.get() == [make_container()]
    assert engine.store.last_action.get() is None
    assert runtime.calls["list_containers"] == 1


@pytest.mark.asyncio
async def test_stop_container_sets_action_and_triggers_refresh(engine, runtime):
    runtime.containers = [make_container(state=ContainerState.STOPPED)]

    await engine.stop_container("abc123")
    await engine.wait_idle()

    assert engine.store.last_action.get() == "Stopped container abc123"
    assert engine.store.last_error.get() is None
    assert runtime.log == [("stop_container", "abc123"), ("list_containers",)]
    assert engine.store.containers.get() == [make_container(state=ContainerState.STOPPED)]


@pytest.mark.asyncio
async def test_refresh_leaves_last_action_untouched(engine, runtime):
    await engine.stop_container("abc123")
    await engine.wait_idle()
    runtime.fail("list_images", BackendError("boom"))
    await engine.refresh_images()

    assert engine.store.last_action.get() == "Stopped container abc123"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "desired, expected_op",
    [(ContainerState.RUNNING, "start_container"), (ContainerState.STOPPED, "stop_container")],
)
async def test_set_container_state_routes_to_command(engine, runtime, desired, expected_op):
    await engine.set_container_state("abc123", desired)
    await engine.wait_idle()

    assert runtime.calls[expected_op] == 1
    assert runtime.log[0] == (expected_op, "abc123")


@pytest.mark.asyncio
@pytest.mark.parametrize("desired, expected_op", [("running", "start_container"), ("stopped", "stop_container")])
async def test_set_container_state_accepts_state_strings(engine, runtime, desired, expected_op):
    await engine.set_container_state("abc123", desired)
    await engine.wait_idle()

    assert runtime.log[0] == (expected_op, "abc123")


@pytest.mark.asyncio
async def test_set_container_state_rejects_unknown_state(engine, runtime):
    with pytest.raises(ValueError):
        engine.set_container_state("abc123", "paused")

    assert engine.pending_tasks() == set()
    assert runtime.log == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "op, dispatch",
    [
        ("list_containers", lambda e: e.refresh_containers()),
        ("list_images", lambda e: e.refresh_images()),
        ("list_volumes", lambda e: e.refresh_volumes()),
        ("start_container", lambda e: e.start_container("abc123")),
        ("stop_container", lambda e: e.stop_container("abc123")),
    ],
)
async def test_every_adapter_failure_is_surfaced(engine, runtime, op, dispatch):
    runtime.fail(op, RuntimeError("daemon exploded"))

    task = dispatch(engine)
    await task
    await engine.wait_idle()

    assert task.exception() is None
    assert engine.store.last_error.get()
    assert "daemon exploded" in engine.store.last_error.get()
    assert engine.store.loading.get() is False


@pytest.mark.asyncio
async def test_blocking_adapter_runs_in_worker_thread():
    backend = MagicMock(spec=DockerBackend)
    backend.list_images.return_value = [make_image()]
    engine = SyncEngine(backend)

    await engine.refresh_images()

    backend.list_images.assert_called_once_with()
    assert engine.store.images.get() == [make_image()]


@pytest.mark.asyncio
async def test_test_connection_success_and_failure(engine, runtime):
    await engine.test_connection()
    assert engine.store.last_action.get() == "Tested Docker connection"

    runtime.fail("ping", BackendError("Docker service not available"))
    await engine.test_connection()
    assert engine.store.last_error.get() == "Docker connection failed: Docker service not available"


def test_record_action_and_host_are_written_through_store(engine):
    engine.record_action("Saved settings")
    engine.set_docker_host("tcp://10.0.0.5:2375")

    assert engine.store.last_action.get() == "Saved settings"
    assert engine.store.docker_host.get() == "tcp://10.0.0.5:2375"


@pytest.mark.asyncio
async def test_wait_idle_drains_pending_tasks(engine, runtime):
    engine.refresh_all()
    assert engine.pending_tasks()

    await engine.wait_idle()

    assert engine.pending_tasks() == set()
