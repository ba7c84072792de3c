"""Tests for plan execution against a ledger."""

import pytest

from strata_deploy.orchestrator.executor import DeploymentExecutor, ExecutionStatus, resolve_args
from strata_deploy.orchestrator.planner import DeploymentPlan, DeploymentPlanner
from strata_deploy.state.ledger import DeploymentLedger
from strata_deploy.state.models import DeploymentRecord, RecordStatus
from strata_deploy.utils.errors import DeployError, DeploymentFailed, UnresolvedReference
from tests.conftest import RecordingDeployer, graph, lit, ref, spec


def make_plan(*specs) -> DeploymentPlan:
    return DeploymentPlanner().plan(graph(*specs))


@pytest.fixture
def executor():
    return DeploymentExecutor()


@pytest.fixture
def chain():
    return make_plan(spec("A"), spec("B", ref("A")), spec("C", ref("B"), lit(42)))


class TestExecute:
    def test_reference_resolves_to_deployed_identifier(self, executor, deployer, ledger_store):
        plan = make_plan(spec("A"), spec("B", ref("A")))

        ledger = executor.execute(plan, ledger_store.load(), deployer)

        assert deployer.calls == [("A", []), ("B", ["0xAA"])]
        assert ledger.deployed_identifier("A") == "0xAA"
        assert ledger.deployed_identifier("B") == "0xBB"
        assert ledger.lookup("B").args == ["0xAA"]

    def test_literals_pass_through_unchanged(self, executor, deployer):
        plan = make_plan(spec("A", lit(1), lit("two"), lit([3, 4]), lit({"k": None})))

        executor.execute(plan, DeploymentLedger(), deployer)

        assert deployer.calls == [("A", [1, "two", [3, 4], {"k": None}])]

    def test_mixed_bindings_keep_position(self, executor, deployer, chain):
        executor.execute(chain, DeploymentLedger(), deployer)
        assert deployer.calls[-1] == ("C", ["0xBB", 42])

    def test_failure_halts_and_keeps_earlier_successes(self, executor, ledger_store, chain):
        cause = DeployError("out of gas", resource_name="B")
        failing = RecordingDeployer(identifiers={"A": "0xAA"}, fail_on={"B": cause})
        ledger = ledger_store.load()

        with pytest.raises(DeploymentFailed) as exc_info:
            executor.execute(chain, ledger, failing)

        assert exc_info.value.resource_name == "B"
        assert exc_info.value.cause is cause
        assert failing.names == ["A", "B"]
        assert ledger.is_deployed("A")
        assert ledger.lookup("B").status == RecordStatus.FAILED
        assert ledger.lookup("B").error == "out of gas"
        assert "C" not in ledger

        persisted = ledger_store.load()
        assert persisted.deployed_identifier("A") == "0xAA"
        assert persisted.lookup("B").status == RecordStatus.FAILED

    def test_failure_carries_partial_report(self, executor, chain):
        failing = RecordingDeployer(fail_on={"B": RuntimeError("rpc down")})

        with pytest.raises(DeploymentFailed) as exc_info:
            executor.execute(chain, DeploymentLedger(), failing)

        report = exc_info.value.report
        assert report.deployed == ["A"]
        assert report.failed == "B"
        assert not report.is_success()
        assert report.results[-1].error == "rpc down"

    def test_rerun_is_idempotent(self, executor, deployer, ledger_store, ledger_path, chain):
        executor.execute(chain, ledger_store.load(), deployer)
        contents = ledger_path.read_bytes()

        second = RecordingDeployer()
        report = executor.run(chain, ledger_store.load(), second)

        assert second.calls == []
        assert report.skipped == ["A", "B", "C"]
        assert report.deployed == []
        assert ledger_path.read_bytes() == contents

    def test_resume_after_failure(self, executor, ledger_store, chain):
        first = RecordingDeployer(identifiers={"A": "0xAA"}, fail_on={"B": RuntimeError("nope")})
        with pytest.raises(DeploymentFailed):
            executor.execute(chain, ledger_store.load(), first)

        second = RecordingDeployer(identifiers={"B": "0xB2", "C": "0xC2"})
        ledger = executor.execute(chain, ledger_store.load(), second)

        assert second.calls == [("B", ["0xAA"]), ("C", ["0xB2", 42])]
        assert ledger.deployed_identifier("A") == "0xAA"
        assert ledger.deployed_identifier("C") == "0xC2"

    def test_interrupted_record_is_redeployed(self, executor, deployer):
        ledger = DeploymentLedger({"A": DeploymentRecord.pending("A", [])})

        executor.execute(make_plan(spec("A")), ledger, deployer)

        assert deployer.names == ["A"]
        assert ledger.lookup("A").status == RecordStatus.SUCCESS

    def test_pending_record_exists_while_deploying(self, executor, ledger_store):
        ledger = ledger_store.load()
        watcher = RecordingDeployer(ledger=ledger)

        executor.execute(make_plan(spec("A"), spec("B", ref("A"))), ledger, watcher)

        assert watcher.status_during_deploy == {
            "A": RecordStatus.PENDING,
            "B": RecordStatus.PENDING,
        }

    @pytest.mark.parametrize("bad_identifier", ["", None, 123])
    def test_invalid_identifier_is_a_failure(self, executor, bad_identifier):
        class BadDeployer(RecordingDeployer):
            def deploy(self, name, args):
                super().deploy(name, args)
                return bad_identifier

        ledger = DeploymentLedger()
        with pytest.raises(DeploymentFailed) as exc_info:
            executor.execute(make_plan(spec("A")), ledger, BadDeployer())

        assert isinstance(exc_info.value.cause, DeployError)
        assert ledger.lookup("A").status == RecordStatus.FAILED
        assert not ledger.is_deployed("A")

    def test_out_of_order_plan_raises_unresolved_reference(self, executor, deployer):
        g = graph(spec("A"), spec("B", ref("A")))
        backwards = DeploymentPlan(steps=[g.get("B"), g.get("A")], dependency_graph=g)
        ledger = DeploymentLedger()

        with pytest.raises(UnresolvedReference) as exc_info:
            executor.execute(backwards, ledger, deployer)

        assert exc_info.value.missing_name == "A"
        assert deployer.calls == []
        assert len(ledger) == 0

    def test_empty_plan(self, executor, deployer):
        report = executor.run(make_plan(), DeploymentLedger(), deployer)
        assert report.is_success()
        assert report.results == []


class TestProgress:
    def test_events_in_order(self, deployer, chain):
        events = []
        executor = DeploymentExecutor(progress_callback=lambda *event: events.append(event))
        ledger = DeploymentLedger({
            "A": DeploymentRecord(resource_name="A", status=RecordStatus.SUCCESS, deployed_identifier="0xAA"),
        })

        executor.execute(chain, ledger, deployer)

        assert events == [
            ("A", ExecutionStatus.SKIPPED, "0xAA"),
            ("B", ExecutionStatus.IN_PROGRESS, None),
            ("B", ExecutionStatus.SUCCESS, "0xBB"),
            ("C", ExecutionStatus.IN_PROGRESS, None),
            ("C", ExecutionStatus.SUCCESS, "0xCC"),
        ]

    def test_failure_event_carries_message(self):
        events = []
        executor = DeploymentExecutor(progress_callback=lambda *event: events.append(event))
        failing = RecordingDeployer(fail_on={"A": DeployError("reverted")})

        with pytest.raises(DeploymentFailed):
            executor.execute(make_plan(spec("A")), DeploymentLedger(), failing)

        assert events[-1] == ("A", ExecutionStatus.FAILED, "reverted")


class TestResolveArgs:
    def test_reference_to_failed_resource_is_unresolved(self):
        ledger = DeploymentLedger({
            "A": DeploymentRecord(resource_name="A", status=RecordStatus.FAILED, error="x"),
        })
        with pytest.raises(UnresolvedReference):
            resolve_args(spec("B", ref("A")), ledger)

    def test_repeated_reference_resolves_each_position(self):
        ledger = DeploymentLedger({
            "A": DeploymentRecord(resource_name="A", status=RecordStatus.SUCCESS, deployed_identifier="0xAA"),
        })
        assert resolve_args(spec("B", ref("A"), lit(0), ref("A")), ledger) == ["0xAA", 0, "0xAA"]
