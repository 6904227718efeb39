"""
app/services/rebalancer.py

Replays URLs whose latest submit outcome is quota_exhausted.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Protocol

from app.domain.indexing import DispatchItem, DispatchOutcome, RebalanceSummary, RequestType
from app.logging_utils import log_event
from app.services.dispatcher import IndexingDispatcher
from db.models.indexing_request import IndexingRequest, OperationType, OutcomeStatus

logger = logging.getLogger(__name__)

NOTHING_TO_REBALANCE = "Nothing to rebalance"


class RebalanceStore(Protocol):
    def urls_with_latest_status(
        self,
        *,
        project_id: uuid.UUID,
        status: str,
        operation: str = ...,
    ) -> list[IndexingRequest]: ...

    def record(self, outcome: DispatchOutcome) -> object: ...

    def update_in_place(self, request_id: int, outcome: DispatchOutcome) -> bool: ...


class Rebalancer:
    """
    Sweep that retries quota-exhausted URLs through the regular submit path.

    Successes overwrite the existing quota_exhausted row; everything else is
    appended like any other dispatch outcome.
    """

    def __init__(self, *, dispatcher: IndexingDispatcher) -> None:
        self._dispatcher = dispatcher

    def find_candidates(self, *, project_id: uuid.UUID, store: RebalanceStore) -> list[DispatchItem]:
        rows = store.urls_with_latest_status(
            project_id=project_id,
            status=OutcomeStatus.QUOTA_EXHAUSTED,
            operation=OperationType.SUBMIT,
        )
        items: list[DispatchItem] = []
        seen: set[str] = set()
        for row in rows:
            if row.url in seen or row.status != OutcomeStatus.QUOTA_EXHAUSTED:
                continue
            seen.add(row.url)
            items.append(
                DispatchItem(
                    url=row.url,
                    request_type=row.request_type or RequestType.URL_UPDATED,
                    prior_request_id=row.id,
                    retries=row.retries + 1,
                )
            )
        return items

    def rebalance(
        self,
        *,
        project_id: uuid.UUID,
        store: RebalanceStore,
        after_record: Callable[[], None] | None = None,
    ) -> RebalanceSummary:
        candidates = self.find_candidates(project_id=project_id, store=store)
        if not candidates:
            log_event(logger, logging.INFO, "rebalance_skipped", project_id=project_id, reason=NOTHING_TO_REBALANCE)
            return RebalanceSummary(
                rebalanced=0,
                still_exhausted=0,
                failed=0,
                total=0,
                message=NOTHING_TO_REBALANCE,
            )

        def record(item: DispatchItem, outcome: DispatchOutcome) -> None:
            updated = False
            if outcome.status == OutcomeStatus.SUCCESS and item.prior_request_id is not None:
                updated = store.update_in_place(item.prior_request_id, outcome)
                if not updated:
                    logger.info(
                        "Rebalance row changed concurrently, appending instead request_id=%s url=%s",
                        item.prior_request_id,
                        item.url,
                    )
            if not updated:
                store.record(outcome)
            if after_record is not None:
                after_record()

        summary = self._dispatcher.dispatch(
            project_id=project_id,
            operation=OperationType.SUBMIT,
            items=candidates,
            recorder=record,
        )
        result = RebalanceSummary(
            rebalanced=summary.succeeded,
            still_exhausted=summary.quota_exhausted,
            failed=summary.failed,
            total=summary.total,
            credentials_used={email: used for email, used in summary.credentials_used.items() if used > 0},
        )
        log_event(
            logger,
            logging.INFO,
            "rebalance_completed",
            project_id=project_id,
            rebalanced=result.rebalanced,
            still_exhausted=result.still_exhausted,
            failed=result.failed,
            total=result.total,
        )
        return result
