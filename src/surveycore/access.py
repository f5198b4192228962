"""
Survey access policy.

Decides whether a caller may read a survey's questions, and whether a
caller may act as the survey's creator.

Passwords of private surveys are stored as salted hashes
(werkzeug.security) and compared in constant time; the cleartext only
ever exists in the author's draft and in the respondent's request.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from surveycore.config import Config
from surveycore.errors import Forbidden, WrongPassword
from surveycore.model import Survey

logger = logging.getLogger(__name__)


class DenyReason(Enum):
    WRONG_PASSWORD = "wrong_password"


@dataclass(frozen=True)
class AccessDecision:
    """
    Outcome of an access check.

    Properties:
        granted: True for Grant
        reason: Why access was denied (None when granted)
    """

    granted: bool
    reason: Optional[DenyReason] = None


GRANT = AccessDecision(granted=True)
DENY_WRONG_PASSWORD = AccessDecision(granted=False, reason=DenyReason.WRONG_PASSWORD)


def hash_password(password: str) -> str:
    """Return the salted hash stored for a private survey's password."""
    return generate_password_hash(
        password,
        method=Config.PASSWORD_HASH_METHOD,
        salt_length=Config.PASSWORD_SALT_LENGTH,
    )


class SurveyAccessPolicy:
    """
    Grants or denies read access to a survey.

    Public surveys are open to everyone regardless of the supplied
    password. Private surveys require an exact password match. A private
    survey with no stored password denies everyone.

    No lockout or rate limiting is applied.
    """

    def verify_access(self, survey: Survey, supplied_password: Optional[str]) -> AccessDecision:
        if not survey.is_private:
            return GRANT
        if not survey.password_hash:
            logger.warning("Private survey %s has no stored password; denying access", survey.id)
            return DENY_WRONG_PASSWORD
        if supplied_password is not None and check_password_hash(survey.password_hash, supplied_password):
            return GRANT
        logger.info("Wrong password supplied for survey %s", survey.id)
        return DENY_WRONG_PASSWORD

    def require_access(self, survey: Survey, supplied_password: Optional[str]) -> None:
        """
        Raises:
            WrongPassword: If access is denied
        """
        if not self.verify_access(survey, supplied_password).granted:
            raise WrongPassword(survey.id)

    @staticmethod
    def is_creator(survey: Survey, user_id: Optional[str]) -> bool:
        return user_id is not None and survey.creator_id == user_id

    def require_creator(self, survey: Survey, user_id: Optional[str], action: str = "manage") -> None:
        """
        Raises:
            Forbidden: If user_id is not the survey's creator
        """
        if not self.is_creator(survey, user_id):
            logger.info("User %s refused permission to %s survey %s", user_id, action, survey.id)
            raise Forbidden(action, survey.id)
