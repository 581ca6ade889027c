"""
Drives build -> push -> reconcile for each release version on this host's architecture.

Each host builds and pushes only its own architecture; the combined manifest
for a version is (re)attempted whenever any host finishes with that version.
"""

from typing import Iterable, List, NamedTuple, Optional, Sequence

from vdockerlib import constants, logutil
from vdockerlib.exceptions import BuildError, CommandError, PushError
from vdockerlib.exectools import CommandRunner
from vdockerlib.manifests import ManifestReconciler
from vdockerlib.registry import RegistryClient
from vdockerlib.releases import VersionResolver
from vdockerlib.util import compose_tag

logger = logutil.getLogger(__name__)


class BuildOutcome(NamedTuple):
    version: str
    skipped: bool = False
    build_ok: bool = False
    push_ok: bool = False

    @property
    def handled(self) -> bool:
        return self.skipped or (self.build_ok and self.push_ok)

    @property
    def status_code(self) -> int:
        return 0 if self.handled else 1


class Orchestrator:

    def __init__(self, registry: RegistryClient, resolver: VersionResolver, reconciler: ManifestReconciler,
                 runner: CommandRunner, repository: str, arch: str, arches: Sequence[str],
                 build_context: str = constants.DEFAULT_BUILD_CONTEXT, docker: str = constants.DEFAULT_DOCKER):
        self.registry = registry
        self.resolver = resolver
        self.reconciler = reconciler
        self.runner = runner
        self.repository = repository
        self.arch = arch
        self.arches = list(arches)
        self.build_context = build_context
        self.docker = docker

    def image_names(self, version: str, latest: bool) -> List[str]:
        """
        :return: Every repository:tag a build of this version is tagged with on this host
        """
        names = [f"{self.repository}:{compose_tag(version, self.arch)}"]
        if latest:
            names.append(f"{self.repository}:{compose_tag(constants.LATEST, self.arch)}")
        return names

    def process_version(self, version: str, latest: bool = False) -> BuildOutcome:
        """
        Build and push one version for the local architecture unless the registry already has it.
        Whatever happens, the combined manifest is attempted on the way out.
        :raises BuildError: the image could not be built; nothing is pushed
        :raises PushError: a tag could not be pushed
        """
        log = logutil.EntityLoggingAdapter(logger, {'entity': version})
        build_ok = False
        try:
            tag = compose_tag(version, self.arch)
            if self.registry.exists(tag):
                log.info("%s:%s already exists in the registry; skipping build", self.repository, tag)
                return BuildOutcome(version, skipped=True)

            names = self.image_names(version, latest)
            self.build(version, names)
            build_ok = True
            self.push(names)
            log.info("Built and pushed %s", ", ".join(names))
            return BuildOutcome(version, build_ok=True, push_ok=True)
        finally:
            if not build_ok:
                log.debug("Reconciling manifest without a new build")
            self.reconcile(version, latest)

    def build(self, version: str, names: Iterable[str]):
        cmd = [self.docker, "build", "--build-arg", f"{constants.VERSION_BUILD_ARG}={version}"]
        for name in names:
            cmd.extend(["-t", name])
        cmd.append(self.build_context)
        try:
            self.runner.run(cmd)
        except CommandError as ex:
            raise BuildError(f"Failed to build {version} for {self.arch}: {ex}\n{ex.combined_output}") from ex

    def push(self, names: Iterable[str]):
        for name in names:
            try:
                self.runner.run([self.docker, "push", name])
            except CommandError as ex:
                raise PushError(f"Failed to push {name}: {ex}\n{ex.combined_output}") from ex

    def reconcile(self, version: str, latest: bool) -> bool:
        ok = self.reconciler.reconcile(version, self.arches)
        if latest:
            ok = self.reconciler.reconcile(constants.LATEST, self.arches) and ok
        return ok

    def cleanup(self):
        """ Remove dangling local image data. Failures are ignored. """
        try:
            self.runner.run([self.docker, "system", "prune", "--force"])
        except CommandError as ex:
            logger.warning("Ignoring failure to prune local image data: %s", ex)

    def run(self, versions: Optional[Sequence[str]] = None, count: Optional[int] = None) -> List[BuildOutcome]:
        """
        Process versions one after another, then prune local image data no matter how the run ended.
        :param versions: Explicit versions to build, in order
        :param count: Build the `count` most recent releases
        If neither is given, the most recent release is built and also tagged latest.
        """
        outcomes = []
        try:
            latest = False
            if versions:
                targets = list(versions)
            elif count is not None:
                targets = self.resolver.latest_n(count)
            else:
                targets = [self.resolver.latest()]
                latest = True
            for version in targets:
                outcomes.append(self.process_version(version, latest=latest))
        finally:
            self.cleanup()
        return outcomes
