"""Invite service: code validation, redemption and trial provisioning."""

import math
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from linkbrain.invites.codes import generate_invite_code, is_valid_code_format, normalize_code
from linkbrain.invites.errors import (
    AlreadyProvisionedError,
    CodeAlreadyUsedError,
    CodeNotFoundError,
    InvalidCodeFormatError,
    MissingFieldsError,
    StoreError,
    SubscriptionNotFoundError,
)
from linkbrain.invites.models import InviteCode, RedemptionResult, SubscriptionStatus
from linkbrain.logging_config import get_logger
from linkbrain.settings import settings
from linkbrain.storage.db import Database
from linkbrain.storage.models import Plan, SubscriptionRecord
from linkbrain.storage.repository import SubscriptionRepository

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(value: datetime) -> str:
    """Format a stored UTC datetime as ISO 8601 with a Z suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


class InviteService:
    """Service for invite code validation and redemption.

    Operations:
    - Validate a code before signup (read only)
    - Redeem a code: credit the inviter and provision the new user
    - Provision a starter subscription at signup
    - Report a user's trial status and ledger
    """

    def __init__(
        self,
        database: Database,
        clock: Callable[[], datetime] = utcnow,
        code_generator: Callable[[], str] = generate_invite_code,
    ):
        """Initialize invite service.

        Args:
            database: Database handle used for every read and write
            clock: Returns the current naive UTC time
            code_generator: Produces candidate invite codes
        """
        self.database = database
        self.clock = clock
        self.code_generator = code_generator
        self.logger = get_logger(__name__)

    @contextmanager
    def _store(self) -> Generator[SubscriptionRepository, None, None]:
        """Open a transaction and translate database failures.

        ``StaleDataError`` and ``IntegrityError`` pass through untouched so
        callers can re-check what another request changed first.
        """
        try:
            with self.database.session() as session:
                yield SubscriptionRepository(session)
        except (StaleDataError, IntegrityError):
            raise
        except SQLAlchemyError as e:
            self.logger.error("subscription_store_error", error=str(e))
            raise StoreError() from e

    def _normalized(self, code: object) -> str:
        if not is_valid_code_format(code):
            raise InvalidCodeFormatError()
        return normalize_code(code)

    def _find_unused(
        self,
        repo: SubscriptionRepository,
        code: str,
    ) -> tuple[SubscriptionRecord, InviteCode]:
        match = repo.find_code_owner(code)
        if match is None:
            raise CodeNotFoundError()

        record, entry = match
        invite = InviteCode.model_validate(entry)
        if invite.is_used:
            raise CodeAlreadyUsedError()

        return record, invite

    def validate(self, code: object) -> str:
        """Check that a code can be redeemed.

        Advisory only: a later redeem repeats every check.

        Args:
            code: Code as entered by the user

        Returns:
            User id of the inviter who owns the code
        """
        normalized = self._normalized(code)

        with self._store() as repo:
            record, _ = self._find_unused(repo, normalized)
            inviter_uid = record.user_id

        self.logger.info("invite_code_validated", code=normalized, inviter_uid=inviter_uid)
        return inviter_uid

    def redeem(self, code: object, new_user_uid: object) -> RedemptionResult:
        """Redeem an invite code for a newly signed-up user.

        Marks the code used, bumps the inviter's referral count, extends the
        inviter's trial from its current end date, and provisions the new
        user's subscription, all in one transaction.

        Args:
            code: Code as entered by the user
            new_user_uid: Id of the user redeeming the code

        Returns:
            RedemptionResult with both users' new trial end dates
        """
        if not code or not isinstance(new_user_uid, str) or not new_user_uid.strip():
            raise MissingFieldsError()

        normalized = self._normalized(code)

        for attempt in range(1, settings.redeem_max_attempts + 1):
            try:
                result = self._redeem_once(normalized, new_user_uid)
                break
            except StaleDataError:
                # Inviter's row changed since it was read; re-read and re-check
                self.logger.warning(
                    "invite_redeem_conflict",
                    code=normalized,
                    attempt=attempt,
                )
            except IntegrityError as e:
                self._raise_integrity_conflict(e, new_user_uid)
        else:
            raise StoreError("Too many concurrent updates, please retry")

        self.logger.info(
            "invite_code_redeemed",
            code=normalized,
            inviter_uid=result.inviter_uid,
            new_user_uid=new_user_uid,
            inviter_trial_end_date=to_iso(result.inviter_trial_end_date),
        )
        return result

    def _redeem_once(self, normalized: str, new_user_uid: str) -> RedemptionResult:
        extension = timedelta(days=settings.trial_extension_days)

        with self._store() as repo:
            inviter, invite = self._find_unused(repo, normalized)

            if repo.exists(new_user_uid):
                raise AlreadyProvisionedError()

            now = self.clock()
            used = invite.model_copy(update={"used_by": new_user_uid, "used_at": now})

            # Reassign the list so the JSON column is flagged dirty
            inviter.invite_codes = [
                used.to_document() if entry.get("code") == normalized else entry
                for entry in inviter.invite_codes
            ]
            inviter.referral_count = (inviter.referral_count or 0) + 1
            inviter.trial_end_date = inviter.trial_end_date + extension

            new_record = self._provision(repo, new_user_uid, referred_by=inviter.user_id, now=now)

            result = RedemptionResult(
                inviter_uid=inviter.user_id,
                new_user_uid=new_user_uid,
                trial_end_date=new_record.trial_end_date,
                inviter_trial_end_date=inviter.trial_end_date,
            )

        return result

    def _raise_integrity_conflict(self, error: IntegrityError, user_id: str) -> None:
        """Translate a failed insert into the error the caller should see.

        A subscription created for ``user_id`` by a concurrent request means
        the user is already provisioned; anything else is a store failure.
        """
        with self._store() as repo:
            provisioned = repo.exists(user_id)

        if provisioned:
            self.logger.warning("subscription_provision_conflict", user_id=user_id)
            raise AlreadyProvisionedError() from error

        self.logger.error("subscription_store_error", error=str(error))
        raise StoreError() from error

    def provision(self, user_id: str, referred_by: str | None = None) -> SubscriptionStatus:
        """Create the starter trial subscription for a new user.

        Args:
            user_id: New user's id
            referred_by: Inviter's user id, if the user signed up with a code

        Returns:
            Status of the created subscription
        """
        if not user_id or not user_id.strip():
            raise MissingFieldsError("Missing user id")

        try:
            with self._store() as repo:
                if repo.exists(user_id):
                    raise AlreadyProvisionedError()
                now = self.clock()
                record = self._provision(repo, user_id, referred_by=referred_by, now=now)
                status = self._status(record, now)
        except IntegrityError as e:
            self._raise_integrity_conflict(e, user_id)

        return status

    def _provision(
        self,
        repo: SubscriptionRepository,
        user_id: str,
        referred_by: str | None,
        now: datetime,
    ) -> SubscriptionRecord:
        codes = [
            InviteCode(code=code, created_at=now).to_document()
            for code in self._issue_codes(repo, settings.invite_codes_per_user)
        ]

        record = SubscriptionRecord(
            user_id=user_id,
            plan=Plan.TRIAL,
            trial_start_date=now,
            trial_end_date=now + timedelta(days=settings.trial_duration_days),
            referred_by=referred_by,
            referral_count=0,
            invite_codes=codes,
        )
        repo.add(record)

        self.logger.info(
            "subscription_provisioned",
            user_id=user_id,
            referred_by=referred_by,
            trial_end_date=to_iso(record.trial_end_date),
        )
        return record

    def _issue_codes(self, repo: SubscriptionRepository, count: int) -> list[str]:
        """Generate ``count`` codes that no ledger holds yet."""
        codes: list[str] = []
        while len(codes) < count:
            for _ in range(settings.code_generation_max_attempts):
                candidate = self.code_generator()
                if candidate not in codes and not repo.code_exists(candidate):
                    codes.append(candidate)
                    break
                self.logger.debug("invite_code_collision", code=candidate)
            else:
                raise StoreError("Could not generate a unique invite code")
        return codes

    def get_status(self, user_id: str) -> SubscriptionStatus:
        """Get a user's trial status and invite ledger."""
        with self._store() as repo:
            record = repo.get(user_id)
            if record is None:
                raise SubscriptionNotFoundError()
            return self._status(record, self.clock())

    def find_owner(self, code: object) -> str | None:
        """Look up which user owns a code, used or not."""
        normalized = self._normalized(code)
        with self._store() as repo:
            match = repo.find_code_owner(normalized)
            return match[0].user_id if match else None

    @staticmethod
    def _status(record: SubscriptionRecord, now: datetime) -> SubscriptionStatus:
        remaining = (record.trial_end_date - now).total_seconds() / 86400
        return SubscriptionStatus(
            user_id=record.user_id,
            plan=record.plan.value,
            trial_start_date=record.trial_start_date,
            trial_end_date=record.trial_end_date,
            remaining_trial_days=max(0, math.ceil(remaining)),
            is_trial_expired=now > record.trial_end_date,
            referred_by=record.referred_by,
            referral_count=record.referral_count,
            invite_codes=[InviteCode.model_validate(entry) for entry in record.invite_codes],
        )
