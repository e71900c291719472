"""Integration tests for the watermark-gated pull channel"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session

import sms_samples
from pesalog.config import settings
from pesalog.infrastructure.database.models import LedgerTransaction
from pesalog.infrastructure.database.repositories import SettingsRepository
from pesalog.services.ingestion import InboundMessage, IngestionPipeline
from pesalog.services.polling import MessagePoller

pytestmark = pytest.mark.integration

NOW = datetime(2026, 1, 17, 12, 0)


def test_first_poll_uses_lookback_window(db: Session, pipeline: IngestionPipeline):
    poller = MessagePoller(pipeline)
    messages = [
        InboundMessage("MPESA", sms_samples.AIRTIME, NOW - timedelta(hours=settings.poll_lookback_hours + 1)),
        InboundMessage("MPESA", sms_samples.SEND_MONEY, NOW - timedelta(hours=2)),
    ]

    summary = poller.poll(db, messages, now=NOW)

    assert summary.total == 1
    assert summary.processed == 1
    assert SettingsRepository(db).get(settings.poll_watermark_key) == (NOW - timedelta(hours=2)).isoformat()


def test_poll_only_imports_messages_newer_than_watermark(db: Session, pipeline: IngestionPipeline):
    poller = MessagePoller(pipeline)
    SettingsRepository(db).set(settings.poll_watermark_key, (NOW - timedelta(hours=1)).isoformat())
    db.commit()

    messages = [
        InboundMessage("MPESA", sms_samples.SEND_MONEY, NOW - timedelta(hours=2)),
        InboundMessage("MPESA", sms_samples.RECEIVED, NOW - timedelta(minutes=30)),
    ]
    summary = poller.poll(db, messages, now=NOW)

    assert summary.total == 1
    assert db.query(LedgerTransaction).one().primary_ref_code == "UAH3H46D7J"
    assert poller.watermark(db) == NOW - timedelta(minutes=30)


def test_poll_tolerates_push_channel_duplicates(db: Session, pipeline: IngestionPipeline):
    """A message already delivered by push is reported as a duplicate, not re-inserted"""
    pipeline.process_message(db, "MPESA", sms_samples.SEND_MONEY, NOW - timedelta(hours=2))

    summary = MessagePoller(pipeline).poll(
        db, [InboundMessage("MPESA", sms_samples.SEND_MONEY, NOW - timedelta(hours=2))], now=NOW
    )

    assert summary.duplicates == 1
    assert db.query(LedgerTransaction).count() == 1


def test_empty_poll_keeps_watermark(db: Session, pipeline: IngestionPipeline):
    poller = MessagePoller(pipeline)
    summary = poller.poll(db, [], now=NOW)

    assert summary.total == 0
    assert SettingsRepository(db).get(settings.poll_watermark_key) is None
