"""Invite ledger entries and service result types."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class InviteCode(BaseModel):
    """A single entry in a user's invite code ledger.

    Serialized with the camelCase keys used by the stored ledger documents.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: str
    used_by: str | None = Field(default=None, alias="usedBy")
    used_at: datetime | None = Field(default=None, alias="usedAt")
    created_at: datetime = Field(alias="createdAt")

    @property
    def is_used(self) -> bool:
        return self.used_by is not None

    def to_document(self) -> dict:
        """Serialize for storage in the JSON ledger column."""
        return self.model_dump(mode="json", by_alias=True)


class RedemptionResult(BaseModel):
    """Outcome of a successful redemption."""
    inviter_uid: str
    new_user_uid: str
    trial_end_date: datetime
    inviter_trial_end_date: datetime
    inviter_extended: bool = True


class SubscriptionStatus(BaseModel):
    """Read-only summary of a user's subscription."""
    user_id: str
    plan: str
    trial_start_date: datetime
    trial_end_date: datetime
    remaining_trial_days: int
    is_trial_expired: bool
    referred_by: str | None
    referral_count: int
    invite_codes: list[InviteCode]

    @property
    def unused_codes(self) -> list[InviteCode]:
        return [c for c in self.invite_codes if not c.is_used]
