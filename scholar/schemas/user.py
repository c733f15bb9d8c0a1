from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class VerifyOtpRequest(BaseModel):
    email: str = Field(min_length=1)
    otp: str = Field(min_length=1)


class EmailRequest(BaseModel):
    """Body of resend-otp and forgot-password."""
    email: str = Field(min_length=1)


class VerifyAndLoginRequest(BaseModel):
    email: str = Field(min_length=1)
    otp: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    email: str = Field(min_length=1)
    otp: str = Field(min_length=1)
    newPassword: str = Field(min_length=1)


class UserPublic(BaseModel):
    name: str | None = None
    email: str


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str
    user: UserPublic


class HealthResponse(BaseModel):
    mongoState: int
    mongoConnected: bool
    memoryUsers: int


class LastOtpResponse(BaseModel):
    otp: str | None = None
    resetOtp: str | None = None
