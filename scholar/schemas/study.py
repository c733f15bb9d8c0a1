import enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for study payloads, which use camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuizDifficulty(str, enum.Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class FileData(CamelModel):
    """An uploaded file. ``data`` is base64, optionally as a data URL."""
    name: str
    type: str
    data: str


class Flashcard(CamelModel):
    id: int
    question: str
    answer: str
    is_learned: bool = False


QUIZ_OPTION_COUNT = 4


class QuizQuestion(CamelModel):
    id: int
    question: str
    options: list[str] = Field(min_length=QUIZ_OPTION_COUNT, max_length=QUIZ_OPTION_COUNT)
    correct_answer_index: int = Field(ge=0, le=QUIZ_OPTION_COUNT - 1)


class QuizResult(CamelModel):
    score: int
    total: int
    feedback: str = ""


class ChatMessage(CamelModel):
    id: str = ""
    role: str  # "user" or "model"; anything else is dropped from history
    text: str
    timestamp: int = 0
    attachment: FileData | None = None


class StudyContext(CamelModel):
    notes: str = ""
    flashcards: list[Flashcard] = []
    quiz_results: list[QuizResult] = []


# ── Requests ───────────────────────────────────────────────────

class NotesRequest(CamelModel):
    files: list[FileData] = []


class FlashcardsRequest(CamelModel):
    files: list[FileData] = []
    notes_context: str = ""
    current_count: int = Field(default=0, ge=0)


class QuizRequest(CamelModel):
    files: list[FileData] = []
    notes_context: str = ""
    difficulty: QuizDifficulty = QuizDifficulty.MEDIUM


class MotivationRequest(CamelModel):
    score: int
    total: int


class ChatRequest(CamelModel):
    message: str = Field(min_length=1)
    history: list[ChatMessage] = []
    context: StudyContext = StudyContext()
    attachment: FileData | None = None


# ── Responses ──────────────────────────────────────────────────

class NotesResponse(CamelModel):
    notes: str


class FlashcardsResponse(CamelModel):
    flashcards: list[Flashcard]


class QuizResponse(CamelModel):
    questions: list[QuizQuestion]


class MotivationResponse(CamelModel):
    message: str


class ChatResponse(CamelModel):
    text: str
