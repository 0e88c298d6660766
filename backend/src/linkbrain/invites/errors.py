"""Invite operation errors.

Every error carries a stable ``error_code`` for API clients and a message
suitable for showing to the user.
"""


class InviteError(Exception):
    """Base class for invite and subscription errors."""

    error_code = "INVITE_ERROR"
    message = "Invite operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidCodeFormatError(InviteError):
    """Code is not a string of the form LB-XXXXXX."""
    error_code = "INVALID_FORMAT"
    message = "Invalid code format"


class CodeNotFoundError(InviteError):
    """No ledger holds the code."""
    error_code = "CODE_NOT_FOUND"
    message = "Code not found"


class CodeAlreadyUsedError(InviteError):
    """Code has already been redeemed."""
    error_code = "CODE_ALREADY_USED"
    message = "Code already used"


class MissingFieldsError(InviteError):
    error_code = "MISSING_FIELDS"
    message = "Missing code or newUserUid"


class AlreadyProvisionedError(InviteError):
    """User already has a subscription record."""
    error_code = "ALREADY_PROVISIONED"
    message = "User already has a subscription"


class SubscriptionNotFoundError(InviteError):
    error_code = "SUBSCRIPTION_NOT_FOUND"
    message = "Subscription not found"


class StoreError(InviteError):
    """Reading from or writing to the database failed."""
    error_code = "STORE_ERROR"
    message = "Subscription store unavailable"
