"""Concurrent confirmation of a chunk's submitted transactions."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from .chain import ChainClient
from .models import OutcomeStatus, SubmissionOutcome
from .submitter import describe_error

logger = logging.getLogger(__name__)


class ConfirmationWaiter:
    def __init__(self, client: ChainClient) -> None:
        self.client = client

    async def confirm(
        self, outcomes: Sequence[SubmissionOutcome], wait_for_confirmation: bool
    ) -> list[SubmissionOutcome]:
        """Promote pending outcomes to confirmed or failed.

        With ``wait_for_confirmation`` false the outcomes come back untouched.
        Outcomes that already failed, or never got a hash, are not waited on.
        """

        if not wait_for_confirmation:
            return list(outcomes)
        return list(await asyncio.gather(*(self._confirm_one(outcome) for outcome in outcomes)))

    async def _confirm_one(self, outcome: SubmissionOutcome) -> SubmissionOutcome:
        if outcome.status is not OutcomeStatus.PENDING or outcome.tx_hash is None:
            return outcome
        try:
            await self.client.await_inclusion(outcome.tx_hash)
        except Exception as exc:
            logger.warning(
                "Confirmation failed for %s (nonce key %d): %s",
                outcome.tx_hash,
                outcome.nonce_key,
                exc,
            )
            return outcome.failed(describe_error(exc))
        return outcome.confirmed()
