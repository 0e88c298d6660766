"""Repository layer for subscription data access."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from linkbrain.logging_config import get_logger
from linkbrain.storage.models import InviteCodeIndex, SubscriptionRecord

logger = get_logger(__name__)


class SubscriptionRepository:
    """Repository for SubscriptionRecord entities and the code index."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> SubscriptionRecord | None:
        """Get a user's subscription record."""
        return self.session.get(SubscriptionRecord, user_id)

    def exists(self, user_id: str) -> bool:
        """Check whether a user already has a subscription record."""
        return self.get(user_id) is not None

    def list_all(self) -> list[SubscriptionRecord]:
        """List all subscription records, ordered by user id."""
        return list(
            self.session.scalars(select(SubscriptionRecord).order_by(SubscriptionRecord.user_id))
        )

    def code_exists(self, code: str) -> bool:
        """Check whether a code has already been issued to anyone."""
        return self.session.get(InviteCodeIndex, code) is not None

    def find_code_owner(self, code: str) -> tuple[SubscriptionRecord, dict[str, Any]] | None:
        """Find the record whose ledger holds ``code``.

        Uses the code index, then falls back to scanning every ledger in
        user id order for codes issued without an index entry.

        Args:
            code: Normalized invite code

        Returns:
            (owning record, ledger entry) or None
        """
        index_entry = self.session.get(InviteCodeIndex, code)
        if index_entry is not None:
            record = self.get(index_entry.user_id)
            if record is not None:
                entry = _find_entry(record, code)
                if entry is not None:
                    return record, entry
            logger.warning("invite_code_index_stale", code=code, user_id=index_entry.user_id)

        for record in self.list_all():
            entry = _find_entry(record, code)
            if entry is not None:
                logger.debug("invite_code_found_by_scan", code=code, user_id=record.user_id)
                return record, entry

        return None

    def add(self, record: SubscriptionRecord) -> SubscriptionRecord:
        """Add a new record and index every code in its ledger.

        Args:
            record: New subscription record

        Returns:
            The persisted record
        """
        self.session.add(record)
        for entry in record.invite_codes:
            self.session.add(InviteCodeIndex(code=entry["code"], user_id=record.user_id))
        self.session.flush()
        logger.debug(
            "subscription_record_added",
            user_id=record.user_id,
            codes=len(record.invite_codes),
        )
        return record


def _find_entry(record: SubscriptionRecord, code: str) -> dict[str, Any] | None:
    for entry in record.invite_codes or []:
        if entry.get("code") == code:
            return entry
    return None
