from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.catalog.base import FetchFailed, FreePromotion
from src.catalog.epic import EpicGamesFetcher
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.ledger import AnnouncementLedger, LedgerError
from src.subscribers import SubscriberDirectory


class CycleState(enum.Enum):
    idle = "idle"
    fetching = "fetching"
    filtering = "filtering"
    recording = "recording"
    dispatching = "dispatching"


@dataclass
class CycleResult:
    fetched: int = 0
    fetch_failed: bool = False
    new_ids: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)
    deliveries: Dict[int, bool] = field(default_factory=dict)


class NotificationPipeline:
    """One fetch -> filter -> record -> dispatch cycle per run_cycle() call.

    New promotions are written to the ledger before any message goes out,
    so a promotion is announced at most once even if dispatch dies midway.
    The price is that a crash after recording loses that announcement.
    """

    def __init__(
        self,
        fetcher: EpicGamesFetcher,
        dispatcher: NotificationDispatcher,
        session_factory: Callable[[], Session],
    ):
        self.fetcher = fetcher
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.state = CycleState.idle

    def run_cycle(self) -> CycleResult:
        logger.info("Checking for new free games")
        result = CycleResult()
        try:
            self._run(result)
        finally:
            self.state = CycleState.idle
        return result

    def _run(self, result: CycleResult) -> None:
        self.state = CycleState.fetching
        try:
            promotions = self.fetcher.fetch_free_now()
        except FetchFailed as e:
            logger.warning(f"Fetch failed, ending cycle: {e}")
            result.fetch_failed = True
            return
        result.fetched = len(promotions)

        with self.session_factory() as session:
            ledger = AnnouncementLedger(session)

            self.state = CycleState.filtering
            candidates = self._filter_new(ledger, promotions, result)

            self.state = CycleState.recording
            new_promotions = self._record(ledger, candidates, result)

            if not new_promotions:
                logger.info("No new free games found")
                return

            logger.info(
                f"Found {len(new_promotions)} new free games: "
                f"{[p.title for p in new_promotions]}"
            )

            self.state = CycleState.dispatching
            try:
                recipients = SubscriberDirectory(session).list_subscribed()
            except SQLAlchemyError as e:
                logger.error(f"Cannot read subscribers, skipping dispatch: {e}")
                return

            logger.info(f"Broadcasting to {len(recipients)} subscribers")
            result.deliveries = self.dispatcher.broadcast(new_promotions, recipients)

    def _filter_new(
        self,
        ledger: AnnouncementLedger,
        promotions: List[FreePromotion],
        result: CycleResult,
    ) -> List[FreePromotion]:
        candidates = []
        seen = set()
        for promotion in promotions:
            # The same id can appear twice in one response
            if promotion.id in seen:
                continue
            seen.add(promotion.id)
            try:
                if ledger.is_announced(promotion.id):
                    continue
            except LedgerError as e:
                logger.error(f"Skipping {promotion.id}, ledger lookup failed: {e}")
                result.failed_ids.append(promotion.id)
                continue
            candidates.append(promotion)
        return candidates

    def _record(
        self,
        ledger: AnnouncementLedger,
        candidates: List[FreePromotion],
        result: CycleResult,
    ) -> List[FreePromotion]:
        recorded = []
        for promotion in candidates:
            try:
                ledger.record_announced(promotion)
            except LedgerError as e:
                logger.error(f"Skipping {promotion.id}, ledger write failed: {e}")
                result.failed_ids.append(promotion.id)
                continue
            recorded.append(promotion)
            result.new_ids.append(promotion.id)
        return recorded
