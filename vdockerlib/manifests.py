"""
Finds versions whose per-architecture images are not yet joined by a combined
(multi-arch) manifest, and creates and pushes those manifests with `docker manifest`.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from vdockerlib import constants, logutil
from vdockerlib.exceptions import CommandError
from vdockerlib.exectools import CommandRunner
from vdockerlib.registry import EntryKind, RegistryClient, RegistryEntry
from vdockerlib.util import compose_tag, split_tag

logger = logutil.getLogger(__name__)

MIN_MANIFEST_ARCHES = 2


@dataclass
class ReconciliationResult:
    missing_versions: List[str] = field(default_factory=list)  # first-seen order, no duplicates
    observed_arches: Set[str] = field(default_factory=set)


def diff(entries: Iterable[RegistryEntry]) -> ReconciliationResult:
    """
    Compare per-architecture tags against manifest tags.
    :param entries: Registry entries in listing order
    :return: Versions with at least one per-architecture tag but no manifest, plus every architecture seen
    """
    entries = list(entries)
    manifest_names = {e.name for e in entries if e.kind is EntryKind.MANIFEST}
    result = ReconciliationResult()
    for entry in entries:
        if entry.kind is not EntryKind.CONTAINER:
            continue
        parsed = split_tag(entry.name)
        if parsed is None:
            logger.debug("Ignoring tag %s: it names no architecture", entry.name)
            continue
        version, arch = parsed
        if version not in manifest_names and version not in result.missing_versions:
            result.missing_versions.append(version)
        result.observed_arches.add(arch)
    return result


class ManifestReconciler:

    def __init__(self, registry: RegistryClient, runner: CommandRunner, repository: str,
                 docker: str = constants.DEFAULT_DOCKER):
        self.registry = registry
        self.runner = runner
        self.repository = repository
        self.docker = docker

    def manifest_name(self, version: str) -> str:
        return f"{self.repository}:{version}"

    def image_name(self, version: str, arch: str) -> str:
        return f"{self.repository}:{compose_tag(version, arch)}"

    def reconcile(self, version: str, arches: Iterable[str]) -> bool:
        """
        (Re)create the combined manifest for a version from one image per architecture and push it.

        A failed push is logged but still counts as success: the manifest was created.
        :return: False if fewer than two architectures are given or the manifest could not be created
        """
        arches = sorted(set(arches))
        if len(arches) < MIN_MANIFEST_ARCHES:
            logger.error("InsufficientArchitectures: cannot create a manifest for %s from %s architecture(s) %s",
                         version, len(arches), arches)
            return False

        name = self.manifest_name(version)

        # Stale local manifest lists make `docker manifest create` refuse or reuse old digests
        try:
            self.runner.run([self.docker, "manifest", "rm", name])
        except CommandError as ex:
            logger.debug("No local manifest %s to remove (%s)", name, ex.exit_code)

        try:
            self.runner.run([self.docker, "manifest", "create", name] +
                            [self.image_name(version, arch) for arch in arches])
        except CommandError as ex:
            logger.error("Failed to create manifest %s: %s\n%s", name, ex, ex.combined_output)
            return False

        try:
            self.runner.run([self.docker, "manifest", "push", name])
        except CommandError as ex:
            logger.error("Failed to push manifest %s: %s\n%s", name, ex, ex.combined_output)
        else:
            logger.info("Pushed manifest %s for %s", name, ", ".join(arches))
        return True

    def reconcile_all_missing(self) -> bool:
        """
        Create manifests for every version in the registry listing that lacks one.
        :return: True only if every missing manifest was created
        """
        result = diff(self.registry.list_tags().results)
        if not result.missing_versions:
            logger.info("Every version in %s already has a manifest", self.repository)
            return True
        logger.info("Versions missing a manifest: %s (architectures seen: %s)",
                    ", ".join(result.missing_versions), ", ".join(sorted(result.observed_arches)))
        ok = True
        for version in result.missing_versions:
            if not self.reconcile(version, result.observed_arches):
                ok = False
        return ok
