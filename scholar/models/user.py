from datetime import datetime, timezone
import enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountState(str, enum.Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


class UserAccount(BaseModel):
    """A user document.

    Stored with the camelCase field names of the ``users`` collection
    (``isVerified``, ``otpExpiry``, ...); attribute access is snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = ""
    email: str
    password_hash: str | None = Field(default=None, alias="password")
    # None only for legacy documents written without the flag
    is_verified: bool | None = Field(default=False, alias="isVerified")

    otp: str | None = None
    otp_expiry: datetime | None = Field(default=None, alias="otpExpiry")

    reset_otp: str | None = Field(default=None, alias="resetOtp")
    reset_otp_expiry: datetime | None = Field(default=None, alias="resetOtpExpiry")

    @field_validator("otp_expiry", "reset_otp_expiry")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        # MongoDB hands back naive datetimes that are already UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def state(self) -> AccountState:
        if self.is_verified is False:
            return AccountState.UNVERIFIED
        return AccountState.VERIFIED

    @property
    def reset_pending(self) -> bool:
        return bool(self.reset_otp)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: dict) -> "UserAccount":
        document = {k: v for k, v in document.items() if k != "_id"}
        return cls.model_validate(document)

    def public(self) -> dict:
        return {"name": self.name, "email": self.email}
