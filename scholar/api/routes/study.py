from fastapi import APIRouter

from scholar.schemas.study import (
    ChatRequest,
    ChatResponse,
    FlashcardsRequest,
    FlashcardsResponse,
    MotivationRequest,
    MotivationResponse,
    NotesRequest,
    NotesResponse,
    QuizRequest,
    QuizResponse,
)
from scholar.services.ai_service import (
    generate_flashcards,
    generate_notes,
    generate_quiz,
    get_chat_response,
    get_motivational_message,
)

router = APIRouter(prefix="/study", tags=["Study Tools"])


@router.post("/notes", response_model=NotesResponse)
async def notes_endpoint(request: NotesRequest):
    """Generate Markdown study notes from uploaded files."""
    return NotesResponse(notes=await generate_notes(request.files))


@router.post("/flashcards", response_model=FlashcardsResponse)
async def flashcards_endpoint(request: FlashcardsRequest):
    cards = await generate_flashcards(request.files, request.notes_context, request.current_count)
    return FlashcardsResponse(flashcards=cards)


@router.post("/quiz", response_model=QuizResponse)
async def quiz_endpoint(request: QuizRequest):
    questions = await generate_quiz(request.files, request.notes_context, request.difficulty)
    return QuizResponse(questions=questions)


@router.post("/motivation", response_model=MotivationResponse)
async def motivation_endpoint(request: MotivationRequest):
    """Feedback for a quiz score. Falls back to a fixed message if the AI is unavailable."""
    return MotivationResponse(message=await get_motivational_message(request.score, request.total))


@router.post("/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest):
    text = await get_chat_response(request.message, request.history, request.context, request.attachment)
    return ChatResponse(text=text)
