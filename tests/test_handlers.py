import threading
from unittest.mock import MagicMock

import kopf
import pytest

from pulp_operator.errors import SpecError
from pulp_operator.handlers.pulp_handler import pass_lock, run_pass
from pulp_operator.services.reconciler import ReconcileResult


@pytest.fixture
def lock():
    return threading.Lock()


class TestRunPass:
    """Translation of pass outcomes into kopf retries."""

    def test_converged_pass_returns(self, pulp_body, lock):
        reconciler = MagicMock()
        reconciler.reconcile.return_value = ReconcileResult()

        run_pass(pulp_body, reconciler, lock)

        passed = reconciler.reconcile.call_args.args[0]
        assert passed == pulp_body
        assert passed is not pulp_body
        assert not lock.locked()

    def test_requeue_becomes_temporary_error(self, pulp_body, lock):
        reconciler = MagicMock()
        reconciler.reconcile.return_value = ReconcileResult(requeue_after=5.0)

        with pytest.raises(kopf.TemporaryError) as excinfo:
            run_pass(pulp_body, reconciler, lock)
        assert excinfo.value.delay == 5.0

    def test_invalid_spec_is_permanent(self, pulp_body, lock):
        reconciler = MagicMock()
        reconciler.reconcile.side_effect = SpecError("invalid Pulp spec")

        with pytest.raises(kopf.PermanentError):
            run_pass(pulp_body, reconciler, lock)
        assert not lock.locked()

    def test_other_errors_propagate(self, pulp_body, lock):
        reconciler = MagicMock()
        reconciler.reconcile.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run_pass(pulp_body, reconciler, lock)
        assert not lock.locked()


class TestPassSerialization:
    """Handler and timer passes over one resource run one at a time."""

    def test_same_memo_shares_lock(self):
        memo = kopf.Memo()
        assert pass_lock(memo) is pass_lock(memo)
        assert pass_lock(memo) is not pass_lock(kopf.Memo())

    def test_concurrent_passes_do_not_overlap(self, pulp_body):
        lock = threading.Lock()
        active = []
        overlaps = []
        started = threading.Event()
        release = threading.Event()

        def reconcile(body):
            active.append(body)
            if len(active) > 1:
                overlaps.append(len(active))
            started.set()
            release.wait(timeout=5)
            active.pop()
            return ReconcileResult()

        reconciler = MagicMock()
        reconciler.reconcile.side_effect = reconcile

        first = threading.Thread(target=run_pass, args=(pulp_body, reconciler, lock))
        first.start()
        assert started.wait(timeout=5)
        second = threading.Thread(target=run_pass, args=(pulp_body, reconciler, lock))
        second.start()
        second.join(timeout=0.2)

        assert second.is_alive()
        assert reconciler.reconcile.call_count == 1

        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert reconciler.reconcile.call_count == 2
        assert overlaps == []
