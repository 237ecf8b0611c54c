"""Unit tests for the sliding-window evaluator."""

import pytest

from admission_gate.adapters.rate_limit import sliding_window
from admission_gate.adapters.rate_limit.base import LimiterConfig
from admission_gate.adapters.rate_limit.ledger import Ledger
from admission_gate.adapters.rate_limit.sliding_window import evaluate, evaluate_window, prune


@pytest.fixture
def config() -> LimiterConfig:
    return LimiterConfig(max_requests=3, window_ms=10_000, key_prefix="write")


def test_prune_boundary_is_exclusive() -> None:
    # window_start = 10_000; a timestamp exactly one window old is dropped
    assert prune([0, 10_000, 10_001, 15_000], now=20_000, window_ms=10_000) == [10_001, 15_000]


def test_prune_keeps_insertion_order() -> None:
    assert prune([5_000, 3_000, 4_000], now=6_000, window_ms=10_000) == [5_000, 3_000, 4_000]


def test_evaluate_window_does_not_mutate_input(config: LimiterConfig) -> None:
    existing = [0, 1_000]
    retained, decision = evaluate_window(existing, 2_000, config)

    assert decision.allowed is True
    assert existing == [0, 1_000]
    assert retained == [0, 1_000, 2_000]


def test_scenario_three_per_ten_seconds(config: LimiterConfig) -> None:
    ledger = Ledger()

    for now in (0, 1_000, 2_000):
        assert evaluate(ledger, "u1", now, config).allowed is True

    denied = evaluate(ledger, "u1", 3_000, config)
    assert denied.allowed is False
    assert denied.retry_after_seconds == 7
    assert denied.remaining == 0

    # t=0 entry has expired by 10.001s
    assert evaluate(ledger, "u1", 10_001, config).allowed is True


def test_denied_request_is_not_recorded(config: LimiterConfig) -> None:
    ledger = Ledger()
    for now in (0, 1_000, 2_000):
        evaluate(ledger, "u1", now, config)

    evaluate(ledger, "u1", 3_000, config)

    assert ledger.snapshot("u1") == (0, 1_000, 2_000)


def test_thirty_one_rapid_calls_admit_exactly_thirty() -> None:
    config = LimiterConfig(max_requests=30, window_ms=60_000, key_prefix="write")
    ledger = Ledger()

    results = [evaluate(ledger, "u1", 1_000 + i, config).allowed for i in range(31)]

    assert results[:30] == [True] * 30
    assert results[30] is False


def test_waiting_retry_after_admits_next_call(config: LimiterConfig) -> None:
    ledger = Ledger()
    for now in (0, 400, 900):
        evaluate(ledger, "u1", now, config)

    denial_at = 1_234
    denied = evaluate(ledger, "u1", denial_at, config)
    assert denied.allowed is False
    assert denied.retry_after_seconds > 0

    later = denial_at + denied.retry_after_seconds * 1000
    assert evaluate(ledger, "u1", later, config).allowed is True


def test_retry_after_rounds_up_to_whole_seconds(config: LimiterConfig) -> None:
    ledger = Ledger()
    for now in (0, 1, 2):
        evaluate(ledger, "u1", now, config)

    # 0 + 10_000 - 9_999 = 1 ms left
    assert evaluate(ledger, "u1", 9_999, config).retry_after_seconds == 1


def test_remaining_counts_down(config: LimiterConfig) -> None:
    ledger = Ledger()
    remaining = [evaluate(ledger, "u1", now, config).remaining for now in (0, 1, 2)]

    assert remaining == [2, 1, 0]


def test_keys_are_isolated(config: LimiterConfig) -> None:
    ledger = Ledger()
    for now in range(5):
        evaluate(ledger, "a", now, config)

    assert evaluate(ledger, "a", 10, config).allowed is False
    assert evaluate(ledger, "b", 10, config).allowed is True


def test_identical_inputs_give_identical_decisions(config: LimiterConfig) -> None:
    inputs = [("a", 0), ("b", 100), ("a", 200), ("a", 300), ("a", 400), ("b", 9_000), ("a", 10_050)]

    def run() -> list:
        ledger = Ledger()
        return [evaluate(ledger, key, now, config) for key, now in inputs]

    assert run() == run()


def test_failure_leaves_entry_untouched(config: LimiterConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    ledger = Ledger()
    evaluate(ledger, "u1", 0, config)
    evaluate(ledger, "u1", 1_000, config)

    def _boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(sliding_window, "evaluate_window", _boom)

    with pytest.raises(RuntimeError):
        evaluate(ledger, "u1", 20_000, config)

    assert ledger.snapshot("u1") == (0, 1_000)
    assert not ledger.lock_for("u1").locked()
