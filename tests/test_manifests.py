import itertools
import unittest
from unittest.mock import MagicMock, call

from vdockerlib import manifests
from vdockerlib.exceptions import CommandError
from vdockerlib.manifests import ManifestReconciler
from vdockerlib.registry import EntryKind, RegistryEntry, TagListing

REPO = "thevlang/vlang"


def container(name):
    return RegistryEntry(name=name, kind=EntryKind.CONTAINER)


def manifest(name):
    return RegistryEntry(name=name, kind=EntryKind.MANIFEST)


class TestDiff(unittest.TestCase):

    def test_empty(self):
        result = manifests.diff([])
        self.assertEqual(result.missing_versions, [])
        self.assertEqual(result.observed_arches, set())

    def test_missing_manifest(self):
        result = manifests.diff([container("1.0-x86_64"), container("1.0-aarch64")])
        self.assertEqual(result.missing_versions, ["1.0"])
        self.assertEqual(result.observed_arches, {"x86_64", "aarch64"})

    def test_all_covered(self):
        entries = [
            manifest("1.0"), container("1.0-x86_64"), container("1.0-aarch64"),
            container("0.9-x86_64"), manifest("0.9"),
            manifest("latest"), container("latest-x86_64"),
        ]
        result = manifests.diff(entries)
        self.assertEqual(result.missing_versions, [])
        self.assertEqual(result.observed_arches, {"x86_64", "aarch64"})

    def test_first_seen_order_without_duplicates(self):
        names = ["0.3-x86_64", "0.4-aarch64", "0.3-aarch64", "0.2-x86_64", "0.4-x86_64"]
        for permutation in itertools.permutations(names):
            result = manifests.diff([container(n) for n in permutation])
            expected = []
            for name in permutation:
                version = name.rsplit("-", 1)[0]
                if version not in expected:
                    expected.append(version)
            self.assertEqual(result.missing_versions, expected)
            self.assertEqual(len(result.missing_versions), len(set(result.missing_versions)))

    def test_only_manifests_named_exactly_count(self):
        # a manifest for 1.0 does not cover 1.0.1
        result = manifests.diff([manifest("1.0"), container("1.0.1-x86_64"), container("1.0-x86_64")])
        self.assertEqual(result.missing_versions, ["1.0.1"])

    def test_hyphenated_version(self):
        result = manifests.diff([container("0.4.0-rc1-x86_64"), container("0.4.0-rc1-aarch64")])
        self.assertEqual(result.missing_versions, ["0.4.0-rc1"])
        self.assertEqual(result.observed_arches, {"x86_64", "aarch64"})

    def test_container_without_arch_is_ignored(self):
        result = manifests.diff([container("nightly"), container("1.0-x86_64")])
        self.assertEqual(result.missing_versions, ["1.0"])
        self.assertEqual(result.observed_arches, {"x86_64"})


class TestReconcile(unittest.TestCase):

    def setUp(self):
        self.registry = MagicMock()
        self.runner = MagicMock()
        self.reconciler = ManifestReconciler(self.registry, self.runner, REPO)

    def commands(self):
        return [c[0][0] for c in self.runner.run.call_args_list]

    def test_insufficient_arches(self):
        self.assertFalse(self.reconciler.reconcile("1.0", {"x86_64"}))
        self.assertFalse(self.reconciler.reconcile("1.0", set()))
        self.assertFalse(self.reconciler.reconcile("1.0", ["x86_64", "x86_64"]))
        self.runner.run.assert_not_called()
        self.registry.list_tags.assert_not_called()

    def test_reconcile(self):
        self.assertTrue(self.reconciler.reconcile("1.0", {"x86_64", "aarch64"}))
        self.assertEqual(self.commands(), [
            ["docker", "manifest", "rm", f"{REPO}:1.0"],
            ["docker", "manifest", "create", f"{REPO}:1.0", f"{REPO}:1.0-aarch64", f"{REPO}:1.0-x86_64"],
            ["docker", "manifest", "push", f"{REPO}:1.0"],
        ])

    def test_remove_failure_is_ignored(self):
        self.runner.run.side_effect = [CommandError("docker manifest rm", 1, "No such manifest"), "", ""]
        self.assertTrue(self.reconciler.reconcile("1.0", {"x86_64", "aarch64"}))
        self.assertEqual(self.runner.run.call_count, 3)

    def test_create_failure(self):
        self.runner.run.side_effect = ["", CommandError("docker manifest create", 1, "manifest unknown"), ""]
        self.assertFalse(self.reconciler.reconcile("1.0", {"x86_64", "aarch64"}))
        # push is never attempted
        self.assertEqual(self.runner.run.call_count, 2)

    def test_push_failure_still_succeeds(self):
        self.runner.run.side_effect = ["", "", CommandError("docker manifest push", 1, "denied")]
        self.assertTrue(self.reconciler.reconcile("1.0", {"x86_64", "aarch64"}))
        self.assertEqual(self.runner.run.call_count, 3)

    def test_idempotent(self):
        first = self.reconciler.reconcile("1.0", {"x86_64", "aarch64"})
        second = self.reconciler.reconcile("1.0", {"x86_64", "aarch64"})
        self.assertEqual(first, second)
        self.assertEqual(self.commands()[:3], self.commands()[3:])

        def create_fails(cmd):
            if cmd[2] == "create":
                raise CommandError(cmd, 1)
            return ""

        self.runner.run.side_effect = create_fails
        self.assertFalse(self.reconciler.reconcile("2.0", {"x86_64", "aarch64"}))
        self.assertEqual(self.reconciler.reconcile("2.0", {"x86_64", "aarch64"}),
                         self.reconciler.reconcile("2.0", {"x86_64", "aarch64"}))

    def test_custom_docker(self):
        reconciler = ManifestReconciler(self.registry, self.runner, REPO, docker="podman")
        reconciler.reconcile("1.0", {"x86_64", "aarch64"})
        self.assertTrue(all(cmd[0] == "podman" for cmd in self.commands()))


class TestReconcileAllMissing(unittest.TestCase):

    def setUp(self):
        self.registry = MagicMock()
        self.runner = MagicMock()
        self.reconciler = ManifestReconciler(self.registry, self.runner, REPO)

    def test_nothing_missing(self):
        self.registry.list_tags.return_value = TagListing(2, [manifest("1.0"), container("1.0-x86_64")])
        self.assertTrue(self.reconciler.reconcile_all_missing())
        self.runner.run.assert_not_called()

    def test_reconciles_every_missing_version(self):
        self.registry.list_tags.return_value = TagListing(5, [
            container("1.1-x86_64"), container("1.1-aarch64"),
            manifest("1.0"), container("1.0-x86_64"),
            container("0.9-aarch64"),
        ])
        self.reconciler.reconcile = MagicMock(return_value=True)
        self.assertTrue(self.reconciler.reconcile_all_missing())
        self.assertEqual(self.reconciler.reconcile.call_args_list, [
            call("1.1", {"x86_64", "aarch64"}),
            call("0.9", {"x86_64", "aarch64"}),
        ])

    def test_one_failure_fails_the_whole(self):
        self.registry.list_tags.return_value = TagListing(3, [
            container("1.1-x86_64"), container("1.0-x86_64"), container("1.0-aarch64"),
        ])
        self.reconciler.reconcile = MagicMock(side_effect=[False, True])
        self.assertFalse(self.reconciler.reconcile_all_missing())
        # later versions are still attempted
        self.assertEqual(self.reconciler.reconcile.call_count, 2)

    def test_single_arch_registry(self):
        self.registry.list_tags.return_value = TagListing(1, [container("1.0-x86_64")])
        self.assertFalse(self.reconciler.reconcile_all_missing())
        self.runner.run.assert_not_called()


if __name__ == "__main__":
    unittest.main()
