import pytest

from tempo_concurrent.models import BatchResult, OutcomeStatus, SubmissionOutcome


def test_outcome_transitions_return_new_objects():
    pending = SubmissionOutcome(3, "0xabc", OutcomeStatus.PENDING)

    confirmed = pending.confirmed()
    failed = pending.failed("reverted")

    assert pending.status is OutcomeStatus.PENDING
    assert confirmed.status is OutcomeStatus.CONFIRMED
    assert failed.error == "reverted"
    assert confirmed.is_terminal and failed.is_terminal


def test_terminal_outcome_cannot_change():
    failed = SubmissionOutcome(3, None, OutcomeStatus.FAILED, "rejected")

    with pytest.raises(ValueError):
        failed.confirmed()
    with pytest.raises(ValueError):
        SubmissionOutcome(4, "0x1", OutcomeStatus.CONFIRMED).failed("late")


def test_batch_result_counts_and_serialises():
    outcomes = [
        SubmissionOutcome(1, "0x1", OutcomeStatus.CONFIRMED),
        SubmissionOutcome(2, None, OutcomeStatus.FAILED, "nonce too low"),
        SubmissionOutcome(3, "0x3", OutcomeStatus.PENDING),
    ]

    result = BatchResult.from_outcomes(outcomes, duration_ms=12, chunks_processed=1)
    payload = result.to_dict()

    assert result.success is False
    assert (result.confirmed_payments, result.failed_payments, result.pending_payments) == (1, 1, 1)
    assert result.nonce_keys == [1, 2, 3]
    assert payload["totalPayments"] == 3
    assert payload["durationMs"] == 12
    assert payload["results"][1] == {
        "nonceKey": 2,
        "hash": None,
        "status": "failed",
        "error": "nonce too low",
    }
    assert "error" not in payload["results"][0]


def test_batch_result_success_without_failures():
    outcomes = [SubmissionOutcome(1, "0x1", OutcomeStatus.PENDING)]

    assert BatchResult.from_outcomes(outcomes, duration_ms=0, chunks_processed=1).success is True
