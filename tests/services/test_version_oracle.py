import pytest

from dockerupdater.models import Staleness
from dockerupdater.services.version_oracle import VersionOracle


@pytest.mark.parametrize(
    "local, remote, expected",
    [
        ("sha256:one", "sha256:two", Staleness.STALE),
        ("sha256:one", "sha256:one", Staleness.CURRENT),
        ("sha256:one", None, Staleness.UNKNOWN),
        (None, "sha256:one", Staleness.UNKNOWN),
    ],
)
def test_check_compares_digests(runtime, registry, logger, local, remote, expected):
    runtime.add("web", image="app:1.0", image_id="sha256:img", local_digest=local)
    registry.digests["app:1.0"] = remote
    oracle = VersionOracle(runtime=runtime, registry=registry, logger=logger)

    report = oracle.check(runtime.resolve("web"))

    assert report.status is expected
    assert report.local_digest == local
    assert report.remote_digest == remote


def test_check_uses_running_image_not_local_tag(runtime, registry, logger):
    runtime.add("web", image="app:1.0", image_id="sha256:running", local_digest="sha256:old")
    runtime.local_digests["app:1.0"] = "sha256:new"
    registry.digests["app:1.0"] = "sha256:new"
    oracle = VersionOracle(runtime=runtime, registry=registry, logger=logger)

    report = oracle.check(runtime.resolve("web"))

    assert report.status is Staleness.STALE
    assert ("image_digest", "sha256:running") in runtime.calls
