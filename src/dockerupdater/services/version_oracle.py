"""Staleness decisions by content-digest comparison."""

from dockerupdater.models import ContainerRef, Staleness, StalenessReport
from dockerupdater.services.registry import parse_image_reference


class VersionOracle:
    """Compares the running image's digest with the registry's current digest."""

    def __init__(self, runtime, registry, logger):
        self.runtime = runtime
        self.registry = registry
        self.logger = logger

    def check(self, ref: ContainerRef) -> StalenessReport:
        repository = parse_image_reference(ref.image_reference).repository
        local_digest = self.runtime.image_digest(ref.image_id or ref.image_reference, repository)
        remote_digest = self.registry.remote_digest(ref.image_reference)

        if not local_digest or not remote_digest:
            status = Staleness.UNKNOWN
        elif local_digest == remote_digest:
            status = Staleness.CURRENT
        else:
            status = Staleness.STALE

        self.logger.debug(
            "Staleness of %s (%s): local=%s remote=%s -> %s",
            ref.name,
            ref.image_reference,
            local_digest or "<none>",
            remote_digest or "<none>",
            status.value,
        )
        return StalenessReport(status=status, local_digest=local_digest, remote_digest=remote_digest)
