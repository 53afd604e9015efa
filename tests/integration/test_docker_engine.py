"""
End-to-end tests against a real Docker daemon.

Skipped when no daemon answers. The tests pull a small public image.
"""
import docker
from docker.utils import kwargs_from_env
import pytest

from drc.MANAGERS.runtime_client import RuntimeClient
from drc.MODELS.client_config import ClientConfig
from drc.MODELS.rebase_spec import RebaseSpec
from drc.MODELS.run_spec import RunSpec
from drc.RUNNERS.interrupt import FlagInterruptSignaler

BASE_REPOSITORY = "alpine"
BASE_TAG = "3.19"
BASE_IMAGE = f"{BASE_REPOSITORY}:{BASE_TAG}"


def is_docker_available() -> bool:
    """Check if Docker is available for testing."""
    try:
        docker.from_env().ping()
        return True
    except Exception:
        return False


pytestmark = pytest.mark.skipif(not is_docker_available(), reason="Docker not available")


@pytest.fixture(scope="module")
def client():
    with RuntimeClient(ClientConfig(poll_interval=0.1, stop_timeout=1)) as client:
        yield client


@pytest.fixture(scope="module")
def base_image_id(client):
    return client.pull(BASE_REPOSITORY, BASE_TAG)


def test_pull_resolves_image(client, base_image_id):
    assert base_image_id.startswith("sha256:")
    assert client.resolve(BASE_IMAGE) == base_image_id
    assert base_image_id in client.images()


def test_run_captures_output(client, base_image_id):
    result = client.run(RunSpec(
        image_id=base_image_id,
        command=["sh", "-c", "echo $GREETING; echo oops >&2; exit 3"],
        environment={"GREETING": "hello"},
        remove=True,
    ))
    assert result.exit_code == 3
    assert result.stdout == b"hello\n"
    assert result.stderr == b"oops\n"


def test_interrupt_stops_container(client, base_image_id):
    signaler = FlagInterruptSignaler()
    signaler.request()
    result = client.run(RunSpec(
        image_id=base_image_id,
        command=["sleep", "60"],
        remove=True,
        interrupt_signaler=signaler,
        interrupt_handler=client.interrupt_handler(),
    ))
    assert result.exit_code != 0


def test_commit_by_rebase(client, base_image_id):
    api = docker.APIClient(**kwargs_from_env())
    source = client.run(RunSpec(
        image_id=base_image_id,
        command=["sh", "-c", "mkdir -p /data && echo payload > /data/out.txt"],
    ))
    image_id = None
    try:
        image_id = client.commit_by_rebase(RebaseSpec(
            source_container_id=source.container_id,
            paths=["/data/out.txt"],
            base_image=BASE_IMAGE,
            repository="drc-test/rebased",
            tag="it",
            comment="rebased by integration test",
        ))
        assert client.resolve("drc-test/rebased:it") == image_id

        result = client.run(RunSpec(image_id=image_id, command=["cat", "/data/out.txt"], remove=True))
        assert result.stdout == b"payload\n"
    finally:
        for container in api.containers(all=True, filters={"since": source.container_id}):
            api.remove_container(container["Id"], force=True)
        api.remove_container(source.container_id, force=True)
        if image_id:
            api.remove_image(image_id, force=True)
        api.close()
