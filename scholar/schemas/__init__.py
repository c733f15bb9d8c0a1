from scholar.schemas.user import (
    SignupRequest, LoginRequest, VerifyOtpRequest, EmailRequest, VerifyAndLoginRequest,
    ResetPasswordRequest, UserPublic, MessageResponse, LoginResponse, HealthResponse,
)
from scholar.schemas.study import FileData, Flashcard, QuizQuestion, QuizResult, ChatMessage, QuizDifficulty
