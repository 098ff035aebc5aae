"""
Error types shared by intake, the access layer and the HTTP service.

Every error carries the HTTP status it maps to, so the service can render
them all through a single exception handler.
"""

from enum import Enum
from typing import List, Optional


class Reason(str, Enum):
    MISSING_FIELDS = "MissingFields"
    NO_PARTICIPANTS = "NoParticipants"
    NON_POSITIVE_AMOUNT = "NonPositiveAmount"
    AMOUNT_OUT_OF_RANGE = "AmountOutOfRange"
    NOT_AUTHORIZED = "NotAuthorized"
    PAYER_NOT_MEMBER = "PayerNotMember"
    PARTICIPANTS_NOT_MEMBERS = "ParticipantsNotMembers"
    INVALID_GROUP_NAME = "InvalidGroupName"
    INVALID_DESCRIPTION = "InvalidDescription"
    NO_VALID_MEMBERS = "NoValidMembers"


class SplitError(Exception):
    status_code = 500

    def __init__(self, message: str, reason: Optional[Reason] = None, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.reason is not None:
            body["reason"] = self.reason.value
        if self.details:
            body["details"] = list(self.details)
        return body


class ValidationError(SplitError):
    """Bad or missing input, rejected before anything is written."""
    status_code = 400


class ConflictError(SplitError):
    status_code = 400


class AuthorizationError(SplitError):
    status_code = 403


class NotFoundError(SplitError):
    status_code = 404
