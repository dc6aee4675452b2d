import copy

import pytest

from dockerupdater.errors import ContainerNotFound, PullFailed, RuntimeCommandError
from dockerupdater.models import ContainerRef


class DummyLogger:
    def __init__(self):
        self.warnings = []
        self.errors = []

    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args, **_kwargs):
        self.warnings.append(message % args if args else message)

    def error(self, message, *args, **_kwargs):
        self.errors.append(message % args if args else message)

    def critical(self, message, *args, **_kwargs):
        self.errors.append(message % args if args else message)


class DummyConsole:
    def __init__(self):
        self.lines = []

    def print(self, *args, **_kwargs):
        self.lines.append(" ".join(str(arg) for arg in args))


def make_inspect(name, image="app:1.0", image_id="sha256:old", running=True, **overrides):
    info = {
        "Id": f"{name}-id-0123456789abcdef",
        "Name": f"/{name}",
        "Image": image_id,
        "State": {"Running": running},
        "Config": {
            "Hostname": f"{name}-id-0123"[:12],
            "Image": image,
            "Env": ["PATH=/usr/bin:/bin"],
            "Labels": {},
        },
        "HostConfig": {
            "NetworkMode": "bridge",
            "PortBindings": {},
            "RestartPolicy": {"Name": "no", "MaximumRetryCount": 0},
        },
        "Mounts": [],
        "NetworkSettings": {"Networks": {"bridge": {}}},
    }
    for key, value in overrides.items():
        if key in info and isinstance(info[key], dict) and isinstance(value, dict):
            info[key].update(value)
        else:
            info[key] = value
    return info


MUTATING_CALLS = {"stop", "pull", "remove", "create", "connect_network", "start"}


class FakeRuntime:
    """In-memory engine recording every call made against it."""

    def __init__(self):
        self.containers = {}
        self.local_digests = {}
        self.pulled_digests = {}
        self.calls = []
        self.fail_pull = set()
        self.fail_create = set()
        self.fail_start = set()
        self.fail_stop = set()
        self.fail_connect = set()
        self.pull_errors = {}
        self.resolve_errors = {}
        self.generation = 0

    def add(self, name, local_digest="sha256:aaa", **kwargs):
        data = make_inspect(name, **kwargs)
        self.containers[name] = data
        self.local_digests[data["Image"]] = local_digest
        return data

    def mutating_calls(self):
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def _ref(self, data):
        return ContainerRef(
            name=data["Name"].lstrip("/"),
            image_reference=data["Config"]["Image"],
            runtime_id=data["Id"],
            image_id=data["Image"],
            running=data["State"]["Running"],
        )

    def resolve(self, name):
        self.calls.append(("resolve", name))
        if name in self.resolve_errors:
            raise self.resolve_errors[name]
        if name not in self.containers:
            raise ContainerNotFound(f"Container '{name}' not found.", container_name=name)
        return self._ref(self.containers[name])

    def inspect_container(self, name):
        self.calls.append(("inspect", name))
        for data in self.containers.values():
            if name in (data["Id"], data["Name"].lstrip("/")):
                return copy.deepcopy(data)
        raise RuntimeCommandError(f"No such container: {name}", stderr="No such container")

    def list_running(self):
        self.calls.append(("list_running",))
        return [self._ref(data) for data in self.containers.values() if data["State"]["Running"]]

    def image_digest(self, image, repository):
        self.calls.append(("image_digest", image))
        return self.local_digests.get(image)

    def pull(self, image_reference):
        self.calls.append(("pull", image_reference))
        if image_reference in self.pull_errors:
            raise self.pull_errors[image_reference]
        if image_reference in self.fail_pull:
            raise PullFailed(f"Could not pull {image_reference}: manifest unknown")
        return self.pulled_digests.get(image_reference)

    def stop(self, ref):
        self.calls.append(("stop", ref.name))
        if ref.name in self.fail_stop:
            raise RuntimeCommandError("container already stopped")
        self.containers[ref.name]["State"]["Running"] = False

    def remove(self, ref):
        self.calls.append(("remove", ref.name))
        del self.containers[ref.name]

    def create(self, name, image_reference, snapshot):
        self.calls.append(("create", name))
        if name in self.fail_create:
            raise RuntimeCommandError("Conflict. The container name is already in use")
        self.generation += 1
        data = make_inspect(
            name,
            image=image_reference,
            image_id=f"sha256:new{self.generation}",
            running=False,
        )
        data["Id"] = f"{name}-new-{self.generation}"
        self.containers[name] = data
        self.local_digests[data["Image"]] = self.pulled_digests.get(image_reference)
        return self._ref(data)

    def connect_network(self, network, ref):
        self.calls.append(("connect_network", network, ref.name))
        if network in self.fail_connect:
            raise RuntimeCommandError(f"network {network} not found")
        self.containers[ref.name]["NetworkSettings"]["Networks"][network] = {}

    def start(self, ref):
        self.calls.append(("start", ref.name))
        if ref.name in self.fail_start:
            raise RuntimeCommandError("OCI runtime create failed")
        if ref.name in self.containers:
            self.containers[ref.name]["State"]["Running"] = True


class FakeRegistry:
    def __init__(self, digests=None):
        self.digests = dict(digests or {})
        self.calls = []

    def remote_digest(self, image_reference):
        self.calls.append(image_reference)
        return self.digests.get(image_reference)


@pytest.fixture
def logger():
    return DummyLogger()


@pytest.fixture
def console():
    return DummyConsole()


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def inspect_factory():
    return make_inspect
