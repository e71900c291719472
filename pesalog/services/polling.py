"""Pull-channel polling gated by a persisted watermark"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Iterable, List

from sqlalchemy.orm import Session

from pesalog.config import settings
from pesalog.infrastructure.database.repositories import SettingsRepository
from pesalog.services.ingestion import ImportSummary, InboundMessage, IngestionPipeline
from pesalog.utils.date_utils import to_naive_local

logger = logging.getLogger(__name__)


class MessagePoller:
    """Imports only messages newer than the last processed timestamp"""

    def __init__(self, pipeline: IngestionPipeline, watermark_key: str | None = None):
        self.pipeline = pipeline
        self.watermark_key = watermark_key or settings.poll_watermark_key

    def watermark(self, db: Session, now: datetime | None = None) -> datetime:
        """Stored watermark, or now minus the lookback window on first poll"""
        stored = SettingsRepository(db).get(self.watermark_key)
        if stored:
            return datetime.fromisoformat(stored)
        now = to_naive_local(now or datetime.now())
        return now - timedelta(hours=settings.poll_lookback_hours)

    def poll(
        self,
        db: Session,
        messages: Iterable[InboundMessage],
        now: datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportSummary:
        """
        Process a pulled batch.

        Messages at or before the watermark were already seen and are not
        counted. The push channel may have delivered some of the rest; the
        pipeline's duplicate check absorbs those.
        """
        since = self.watermark(db, now)
        fresh: List[InboundMessage] = [m for m in messages if to_naive_local(m.timestamp) > since]

        summary = self.pipeline.import_historical(db, fresh, cancel_event=cancel_event)

        if summary.last_processed_at and summary.last_processed_at > since:
            SettingsRepository(db).set(self.watermark_key, summary.last_processed_at.isoformat())
            db.commit()
            logger.info(
                "Poll watermark advanced",
                extra={"watermark": summary.last_processed_at.isoformat(), "processed": summary.processed},
            )
        return summary
