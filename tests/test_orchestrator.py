import unittest
from unittest.mock import MagicMock, call

from vdockerlib.exceptions import BuildError, CommandError, NetworkError, PushError
from vdockerlib.orchestrator import BuildOutcome, Orchestrator

REPO = "thevlang/vlang"
ARCHES = ["x86_64", "aarch64"]


class TestOrchestrator(unittest.TestCase):

    def setUp(self):
        self.registry = MagicMock()
        self.registry.exists.return_value = False
        self.resolver = MagicMock()
        self.reconciler = MagicMock()
        self.reconciler.reconcile.return_value = True
        self.runner = MagicMock()
        self.orchestrator = Orchestrator(self.registry, self.resolver, self.reconciler, self.runner,
                                         repository=REPO, arch="x86_64", arches=ARCHES, build_context="/srv/v")

    def commands(self):
        return [c[0][0] for c in self.runner.run.call_args_list]

    def test_skip_existing(self):
        self.registry.exists.return_value = True
        outcome = self.orchestrator.process_version("0.4.3")
        self.assertEqual(outcome, BuildOutcome("0.4.3", skipped=True))
        self.assertEqual(outcome.status_code, 0)
        self.registry.exists.assert_called_once_with("0.4.3-x86_64")
        # no build or push
        self.runner.run.assert_not_called()
        # but the manifest is still attempted
        self.reconciler.reconcile.assert_called_once_with("0.4.3", ARCHES)

    def test_build_and_push(self):
        outcome = self.orchestrator.process_version("0.4.3")
        self.assertEqual(outcome, BuildOutcome("0.4.3", build_ok=True, push_ok=True))
        self.assertTrue(outcome.handled)
        self.assertEqual(self.commands(), [
            ["docker", "build", "--build-arg", "V_VERSION=0.4.3", "-t", f"{REPO}:0.4.3-x86_64", "/srv/v"],
            ["docker", "push", f"{REPO}:0.4.3-x86_64"],
        ])
        self.reconciler.reconcile.assert_called_once_with("0.4.3", ARCHES)

    def test_latest_build(self):
        self.orchestrator.process_version("0.4.3", latest=True)
        self.assertEqual(self.commands(), [
            ["docker", "build", "--build-arg", "V_VERSION=0.4.3",
             "-t", f"{REPO}:0.4.3-x86_64", "-t", f"{REPO}:latest-x86_64", "/srv/v"],
            ["docker", "push", f"{REPO}:0.4.3-x86_64"],
            ["docker", "push", f"{REPO}:latest-x86_64"],
        ])
        self.assertEqual(self.reconciler.reconcile.call_args_list, [call("0.4.3", ARCHES), call("latest", ARCHES)])

    def test_build_failure_is_fatal_but_reconciles(self):
        self.runner.run.side_effect = CommandError("docker build", 1, "error: compilation failed")
        with self.assertRaisesRegex(BuildError, "compilation failed"):
            self.orchestrator.process_version("0.4.3", latest=True)
        # nothing is pushed
        self.assertEqual(self.runner.run.call_count, 1)
        self.assertEqual(self.reconciler.reconcile.call_args_list, [call("0.4.3", ARCHES), call("latest", ARCHES)])

    def test_push_failure_is_fatal_but_reconciles(self):
        self.runner.run.side_effect = ["", CommandError("docker push", 1, "denied: requested access")]
        with self.assertRaises(PushError):
            self.orchestrator.process_version("0.4.3", latest=True)
        # the latest tag is not pushed after the version tag failed
        self.assertEqual(self.runner.run.call_count, 2)
        self.assertEqual(self.reconciler.reconcile.call_count, 2)

    def test_registry_failure_still_reconciles(self):
        self.registry.exists.side_effect = NetworkError("unreachable")
        with self.assertRaises(NetworkError):
            self.orchestrator.process_version("0.4.3")
        self.runner.run.assert_not_called()
        self.reconciler.reconcile.assert_called_once_with("0.4.3", ARCHES)

    def test_reconcile_result(self):
        self.reconciler.reconcile.side_effect = [True, False]
        self.assertFalse(self.orchestrator.reconcile("0.4.3", latest=True))
        self.reconciler.reconcile.side_effect = [False, True]
        self.assertFalse(self.orchestrator.reconcile("0.4.3", latest=True))
        self.reconciler.reconcile.side_effect = None
        self.reconciler.reconcile.return_value = True
        self.assertTrue(self.orchestrator.reconcile("0.4.3", latest=False))

    def test_cleanup_failure_is_ignored(self):
        self.runner.run.side_effect = CommandError("docker system prune", 1)
        self.orchestrator.cleanup()
        self.runner.run.assert_called_once_with(["docker", "system", "prune", "--force"])

    def test_run_latest(self):
        self.resolver.latest.return_value = "0.4.3"
        outcomes = self.orchestrator.run()
        self.assertEqual(outcomes, [BuildOutcome("0.4.3", build_ok=True, push_ok=True)])
        self.assertIn(["docker", "push", f"{REPO}:latest-x86_64"], self.commands())
        self.assertEqual(self.commands()[-1], ["docker", "system", "prune", "--force"])
        self.resolver.latest_n.assert_not_called()

    def test_run_latest_n(self):
        self.resolver.latest_n.return_value = ["0.4.3", "0.4.2", "0.4.1"]
        self.registry.exists.side_effect = lambda tag: tag == "0.4.2-x86_64"
        outcomes = self.orchestrator.run(count=3)
        self.resolver.latest_n.assert_called_once_with(3)
        self.assertEqual([o.version for o in outcomes], ["0.4.3", "0.4.2", "0.4.1"])
        self.assertEqual([o.skipped for o in outcomes], [False, True, False])
        # not marked latest
        self.assertNotIn(call("latest", ARCHES), self.reconciler.reconcile.call_args_list)
        builds = [cmd for cmd in self.commands() if cmd[1] == "build"]
        self.assertEqual([cmd[3] for cmd in builds], ["V_VERSION=0.4.3", "V_VERSION=0.4.1"])

    def test_run_explicit_versions(self):
        outcomes = self.orchestrator.run(versions=["0.4.1", "0.4.3"])
        self.resolver.latest.assert_not_called()
        self.resolver.latest_n.assert_not_called()
        self.assertEqual([o.version for o in outcomes], ["0.4.1", "0.4.3"])
        self.assertEqual([c[0][0] for c in self.reconciler.reconcile.call_args_list], ["0.4.1", "0.4.3"])

    def test_run_stops_at_fatal_error_and_cleans_up(self):
        def run(cmd):
            if cmd[1] == "build" and cmd[3] == "V_VERSION=0.4.2":
                raise CommandError(cmd, 2, "boom")
            return ""

        self.runner.run.side_effect = run
        with self.assertRaises(BuildError):
            self.orchestrator.run(versions=["0.4.1", "0.4.2", "0.4.3"])
        self.assertNotIn("V_VERSION=0.4.3", [cmd[3] for cmd in self.commands() if cmd[1] == "build"])
        self.assertEqual(self.commands()[-1], ["docker", "system", "prune", "--force"])

    def test_run_cleans_up_when_resolution_fails(self):
        self.resolver.latest.side_effect = NetworkError("unreachable")
        with self.assertRaises(NetworkError):
            self.orchestrator.run()
        self.assertEqual(self.commands(), [["docker", "system", "prune", "--force"]])


class TestBuildOutcome(unittest.TestCase):

    def test_status(self):
        self.assertEqual(BuildOutcome("1.0", skipped=True).status_code, 0)
        self.assertEqual(BuildOutcome("1.0", build_ok=True, push_ok=True).status_code, 0)
        self.assertEqual(BuildOutcome("1.0", build_ok=True).status_code, 1)
        self.assertEqual(BuildOutcome("1.0").status_code, 1)


if __name__ == "__main__":
    unittest.main()
