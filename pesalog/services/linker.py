"""Reference linker - correlates messages that describe the same event"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from pesalog.domain.dialects import extract_ref_codes
from pesalog.domain.linking import LinkedMessage, merge_linked_messages
from pesalog.domain.models import MergedFields
from pesalog.domain.parser import DialectMatcher, normalize_body
from pesalog.infrastructure.database.repositories import RawMessageRepository, RelatedMessageRepository

logger = logging.getLogger(__name__)


class ReferenceLinker:
    """Links raw messages by reference code and merges their fields"""

    def __init__(self, matcher: DialectMatcher):
        self.matcher = matcher

    def extract_reference_codes(self, body: str) -> List[str]:
        """Reference tokens in encounter order; the first is the primary"""
        return extract_ref_codes(normalize_body(body))

    def link(self, db: Session, raw_message_id: int, body: str) -> Optional[MergedFields]:
        """
        Tag a message with its primary reference code and link it to earlier
        messages carrying the same code.

        Flow:
        1. Extract codes; none means nothing to link
        2. Persist the primary code on the raw message
        3. Create one edge per related message (idempotent)
        4. Re-parse the whole group and merge from scratch

        Returns:
            Merged fields for the group, or None when the message stands alone
        """
        codes = self.extract_reference_codes(body)
        if not codes:
            return None

        primary_code = codes[0]
        messages = RawMessageRepository(db)
        edges = RelatedMessageRepository(db)

        current = messages.get(raw_message_id)
        if current is None:
            return None
        messages.set_linked_ref_code(current, primary_code)

        related = messages.find_by_ref_code(primary_code, exclude_id=raw_message_id)
        if not related:
            return None

        for other in related:
            _, created = edges.link(raw_message_id, other.id, primary_code)
            if created:
                logger.debug(
                    "Linked related messages",
                    extra={"ref_code": primary_code, "message_ids": [raw_message_id, other.id]},
                )

        group = [current, *related]
        return merge_linked_messages(
            [
                LinkedMessage(
                    raw_message_id=m.id,
                    received_at=m.received_at,
                    parsed=self.matcher.parse(m.body, m.received_at),
                )
                for m in group
            ]
        )

    def attach_transaction(self, db: Session, ref_code: str, transaction_id: int) -> int:
        """Point every edge for a reference code at the transaction it resolved to"""
        return RelatedMessageRepository(db).attach_transaction(ref_code, transaction_id)
