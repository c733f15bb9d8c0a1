from fastapi import APIRouter, Depends, HTTPException

from scholar.db.database import get_user_store, memory_store, mongo
from scholar.db.user_store import UserStore
from scholar.schemas.user import HealthResponse, LastOtpResponse

router = APIRouter(tags=["System"])

# Mounted only when ENVIRONMENT=test
test_router = APIRouter(prefix="/__test", tags=["Test"])


@router.get("/health", response_model=HealthResponse)
async def health():
    connected = await mongo.is_connected()
    return HealthResponse(
        mongoState=mongo.state,
        mongoConnected=connected,
        memoryUsers=await memory_store.count(),
    )


@test_router.get("/last-otp", response_model=LastOtpResponse)
async def last_otp(email: str | None = None, store: UserStore = Depends(get_user_store)):
    """Current signup and reset OTPs for an account, for end-to-end tests."""
    if not email:
        raise HTTPException(status_code=400, detail="email required")
    account = await store.get_by_email(email)
    if account is None:
        return LastOtpResponse()
    return LastOtpResponse(otp=account.otp, resetOtp=account.reset_otp)
