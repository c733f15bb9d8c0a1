"""
User storage backends.

Two implementations share the ``UserStore`` interface:

- ``MongoUserStore``: durable, backed by a motor collection with a unique
  index on ``email``.
- ``MemoryUserStore``: process-local list used while MongoDB is unreachable.
  Nothing survives a restart.

OTP consumption is a compare-and-swap in both: the record is only updated when
the stored code matches and has not expired, so a code can be spent once even
when two requests race for it.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from scholar.core.logging_config import get_logger
from scholar.core.security import otp_matches
from scholar.models.user import UserAccount

logger = get_logger(__name__)


class UserStore(ABC):
    """Storage interface for user accounts, keyed by email."""

    name: str = "abstract"

    @abstractmethod
    async def get_by_email(self, email: str) -> UserAccount | None:
        ...

    @abstractmethod
    async def create(self, account: UserAccount) -> bool:
        """Insert a new account. Returns False if the email is already taken."""

    @abstractmethod
    async def set_signup_otp(self, email: str, otp: str, expiry: datetime) -> bool:
        """Overwrite the signup OTP. Returns False if no such account."""

    @abstractmethod
    async def consume_signup_otp(self, email: str, otp: str, now: datetime) -> UserAccount | None:
        """Mark the account verified and clear its OTP if ``otp`` is current.

        Returns the updated account, or None when the account is missing or
        the code is wrong, absent or expired.
        """

    @abstractmethod
    async def set_reset_otp(self, email: str, otp: str, expiry: datetime) -> bool:
        """Overwrite the password-reset OTP. Returns False if no such account."""

    @abstractmethod
    async def consume_reset_otp(self, email: str, otp: str, now: datetime, password_hash: str) -> bool:
        """Store ``password_hash`` and clear the reset OTP if ``otp`` is current."""

    @abstractmethod
    async def count(self) -> int:
        ...


class MemoryUserStore(UserStore):
    """In-process fallback store.

    No method awaits between reading and mutating ``_users``, so each call is
    atomic with respect to other requests on the event loop.
    """

    name = "memory"

    def __init__(self):
        self._users: list[UserAccount] = []

    def _find(self, email: str) -> UserAccount | None:
        for user in self._users:
            if user.email == email:
                return user
        return None

    async def get_by_email(self, email: str) -> UserAccount | None:
        user = self._find(email)
        return user.model_copy() if user else None

    async def create(self, account: UserAccount) -> bool:
        if self._find(account.email) is not None:
            return False
        self._users.append(account.model_copy())
        return True

    async def set_signup_otp(self, email: str, otp: str, expiry: datetime) -> bool:
        user = self._find(email)
        if user is None:
            return False
        user.otp = otp
        user.otp_expiry = expiry
        return True

    async def consume_signup_otp(self, email: str, otp: str, now: datetime) -> UserAccount | None:
        user = self._find(email)
        if user is None or not otp_matches(user.otp, otp):
            return None
        if user.otp_expiry is None or user.otp_expiry <= now:
            return None
        user.is_verified = True
        user.otp = None
        user.otp_expiry = None
        return user.model_copy()

    async def set_reset_otp(self, email: str, otp: str, expiry: datetime) -> bool:
        user = self._find(email)
        if user is None:
            return False
        user.reset_otp = otp
        user.reset_otp_expiry = expiry
        return True

    async def consume_reset_otp(self, email: str, otp: str, now: datetime, password_hash: str) -> bool:
        user = self._find(email)
        if user is None or not otp_matches(user.reset_otp, otp):
            return False
        if user.reset_otp_expiry is None or user.reset_otp_expiry <= now:
            return False
        user.password_hash = password_hash
        user.reset_otp = None
        user.reset_otp_expiry = None
        return True

    async def count(self) -> int:
        return len(self._users)

    def clear(self) -> None:
        self._users.clear()


class MongoUserStore(UserStore):
    """Durable store over a motor ``AsyncIOMotorCollection``."""

    name = "mongo"

    def __init__(self, collection):
        self.collection = collection

    async def get_by_email(self, email: str) -> UserAccount | None:
        document = await self.collection.find_one({"email": email})
        return UserAccount.from_document(document) if document else None

    async def create(self, account: UserAccount) -> bool:
        try:
            await self.collection.insert_one(account.to_document())
        except DuplicateKeyError:
            logger.info(f"Insert lost unique-email race | email={account.email}")
            return False
        return True

    async def set_signup_otp(self, email: str, otp: str, expiry: datetime) -> bool:
        result = await self.collection.update_one(
            {"email": email},
            {"$set": {"otp": otp, "otpExpiry": expiry}},
        )
        return result.matched_count > 0

    async def consume_signup_otp(self, email: str, otp: str, now: datetime) -> UserAccount | None:
        document = await self.collection.find_one_and_update(
            {"email": email, "otp": otp, "otpExpiry": {"$gt": now}},
            {"$set": {"isVerified": True}, "$unset": {"otp": "", "otpExpiry": ""}},
            return_document=ReturnDocument.AFTER,
        )
        return UserAccount.from_document(document) if document else None

    async def set_reset_otp(self, email: str, otp: str, expiry: datetime) -> bool:
        result = await self.collection.update_one(
            {"email": email},
            {"$set": {"resetOtp": otp, "resetOtpExpiry": expiry}},
        )
        return result.matched_count > 0

    async def consume_reset_otp(self, email: str, otp: str, now: datetime, password_hash: str) -> bool:
        document = await self.collection.find_one_and_update(
            {"email": email, "resetOtp": otp, "resetOtpExpiry": {"$gt": now}},
            {"$set": {"password": password_hash}, "$unset": {"resetOtp": "", "resetOtpExpiry": ""}},
        )
        return document is not None

    async def count(self) -> int:
        return await self.collection.count_documents({})
