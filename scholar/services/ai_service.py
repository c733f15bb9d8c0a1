"""
AI Service for generating study material and chat replies.

Each function builds a Messages request and sends it through the transport
chosen by the client resolver (direct key or server proxy).
"""
import json
import re
import time

from scholar.core.config import settings
from scholar.core.exceptions import EmptyResponseError, InvalidResponseError
from scholar.core.logging_config import get_logger
from scholar.schemas.study import (
    ChatMessage,
    FileData,
    Flashcard,
    QuizDifficulty,
    QuizQuestion,
    StudyContext,
)
from scholar.services.ai_client import get_resolver
from scholar.services.file_processor import to_content_block, to_content_blocks

logger = get_logger(__name__)

NOTES_CONTEXT_LIMIT = 5000
CHAT_NOTES_LIMIT = 10000
CHAT_FLASHCARD_SAMPLE = 5
MOTIVATION_FALLBACK = "Keep learning, you're doing great!"
CHAT_EMPTY_REPLY = "I couldn't generate a response."

NOTES_SYSTEM_PROMPT = """You are an expert academic tutor. Analyze the provided study material and create a "Study Guide".

STRICT LAYOUT TEMPLATE (Markdown):

# [Title of Topic]

## 📝 Overview
[Short, friendly introduction (3-5 sentences). Explain what the topic covers and why it's important.]

## 🔑 Key Concepts

### 1. [Concept Name]
* **Definition**: [Clear definition]
* **Explanation**: [Short explanation]
* **Why it matters**: [Context]

> 💡 **Example**: [Practical real-world example in 1-3 lines]

### 2. [Next Concept]
* **What it is**: [Description]
* **Key Details**: [Bullets]

> 💬 **Quick Tip**: [Helpful tip or reminder]

(Repeat pattern for other concepts)

## 🧠 Summary & Takeaways
* [Bullet point 1]
* [Bullet point 2]
* [Bullet point 3]

RULES:
- Cover every topic in the material exhaustively, with a glossary of key terms and the critical nuances.
- Use ONLY Markdown formatting. No raw HTML tags.
- Use LaTeX for math ($E=mc^2$).
- Do not use code blocks unless strictly necessary for programming code.
- Keep output clean, structured, and PDF-friendly."""

FLASHCARDS_SYSTEM_PROMPT = """You are an AI tutor. Generate 15-20 flashcards for studying based on the content provided.
Focus on key concepts, definitions, and important facts.
Keep the Question concise.
Keep the Answer clear and direct.

Format your response as a JSON object with this structure:
```json
{"flashcards": [{"question": "Question text", "answer": "Answer text"}]}
```

Return ONLY the JSON object, no other text."""

QUIZ_DIFFICULTY_FOCUS = {
    QuizDifficulty.EASY: "Focus on definitions and basic recall.",
    QuizDifficulty.MEDIUM: "Focus on understanding and application.",
    QuizDifficulty.HARD: "Focus on analysis and complex scenarios.",
}

QUIZ_SYSTEM_PROMPT = """Create a {difficulty} difficulty multiple-choice quiz with 15-20 questions based on the provided material.
{focus}

Every question has exactly four options and one correct answer, given as the 0-based index of the correct option.

Format your response as a JSON object with this structure:
```json
{{"questions": [{{"question": "Question text?", "options": ["A", "B", "C", "D"], "correctAnswerIndex": 0}}]}}
```

Return ONLY the JSON object, no other text."""

MOTIVATION_SYSTEM_PROMPT = "You are a supportive study coach. Keep messages short (max 2 sentences)."

CHAT_SYSTEM_PROMPT = """You are ScholarAI, an enthusiastic and friendly study companion.

IDENTITY:
If asked about your identity, who made you, or your developer, answer: "I am Scholar AI, developed by Kronstadt."

CONTEXT:
{notes}
{flashcards}
{quiz}

GOAL:
Help the student learn by answering questions about their notes, clarifying concepts,
offering study tips based on their performance, and being supportive.

INSTRUCTIONS:
- Use Markdown for general formatting.
- Mathematical formulas use LaTeX syntax: inline equations in single dollar signs ($E=mc^2$),
  block equations in double dollar signs ($$...$$), with no spaces between the dollar signs and the formula."""


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences (```json ... ```) from AI responses."""
    stripped = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    stripped = re.sub(r"\n?```\s*$", "", stripped)
    return stripped.strip()


def _truncate_context(notes_context: str) -> str:
    return notes_context[:NOTES_CONTEXT_LIMIT] if notes_context else "None"


def _user_turn(prompt: str, files: list[FileData]) -> dict:
    return {"role": "user", "content": [{"type": "text", "text": prompt}, *to_content_blocks(files)]}


async def generate_content(
    system_prompt: str,
    messages: list[dict],
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> str:
    """
    Send a request through the resolved transport.

    Args:
        system_prompt: The system context for the AI
        messages: Conversation turns, last one from the user
        max_tokens: Maximum tokens in response (settings default when None)
        temperature: Creativity level (0-1), provider default when None

    Returns:
        Generated text content (may be empty)
    """
    request = {
        "model": settings.claude_model,
        "max_tokens": max_tokens or settings.ai_max_tokens,
        "system": system_prompt,
        "messages": messages,
    }
    if temperature is not None:
        request["temperature"] = temperature

    start_time = time.time()
    transport = get_resolver().get_transport()
    try:
        text = await transport.generate(request)
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(f"AI generation failed | duration={duration_ms:.2f}ms | transport={transport!r} | error={str(e)}")
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"AI generation completed | duration={duration_ms:.2f}ms | chars={len(text or '')}")
    return text


def _parse_json_array(text: str | None, key: str) -> list:
    """Pull ``key`` out of a JSON object reply; it must be a list."""
    if not text or not text.strip():
        raise EmptyResponseError()
    try:
        parsed = json.loads(strip_json_fences(text))
    except json.JSONDecodeError:
        raise InvalidResponseError("AI response was not valid JSON")
    items = parsed.get(key) if isinstance(parsed, dict) else None
    if not isinstance(items, list):
        raise InvalidResponseError(f"AI response is missing a '{key}' array")
    return items


async def generate_notes(files: list[FileData]) -> str:
    """
    Generate Markdown study notes from uploaded material.

    Raises:
        EmptyResponseError: If the provider returns no text
    """
    logger.info(f"Generating study notes | files={len(files)}")
    prompt = "Here is the study material. Please generate detailed, easy-to-understand notes following the strict layout."
    notes = await generate_content(NOTES_SYSTEM_PROMPT, [_user_turn(prompt, files)])
    if not notes or not notes.strip():
        raise EmptyResponseError("No notes generated")
    return notes


async def generate_flashcards(
    files: list[FileData],
    notes_context: str,
    current_count: int,
) -> list[Flashcard]:
    """
    Generate flashcards from files and notes.

    Args:
        files: Uploaded study material
        notes_context: Previously generated notes (truncated to 5,000 chars)
        current_count: Number of cards the caller already has; new ids continue from it

    Returns:
        Flashcards with sequential ids starting at current_count + 1

    Raises:
        EmptyResponseError: If the provider returns no text
        InvalidResponseError: If the reply is not {"flashcards": [{question, answer}, ...]}
    """
    logger.info(f"Generating flashcards | files={len(files)} | current_count={current_count}")
    prompt = (
        f"Context from notes: {_truncate_context(notes_context)}\n"
        "Please analyze the attached files (if any) and the context to generate flashcards."
    )
    text = await generate_content(FLASHCARDS_SYSTEM_PROMPT, [_user_turn(prompt, files)], temperature=0.5)
    cards = _parse_json_array(text, "flashcards")

    try:
        return [
            Flashcard(
                id=current_count + index + 1,
                question=item["question"],
                answer=item["answer"],
                is_learned=False,
            )
            for index, item in enumerate(cards)
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidResponseError(f"Malformed flashcard in AI response: {e}")


async def generate_quiz(
    files: list[FileData],
    notes_context: str,
    difficulty: QuizDifficulty,
) -> list[QuizQuestion]:
    """
    Generate a multiple-choice quiz. Difficulty only changes the prompt wording.

    Raises:
        EmptyResponseError: If the provider returns no text
        InvalidResponseError: If the reply is not {"questions": [...]}
    """
    difficulty = QuizDifficulty(difficulty)
    logger.info(f"Generating quiz | files={len(files)} | difficulty={difficulty.value}")
    system_prompt = QUIZ_SYSTEM_PROMPT.format(
        difficulty=difficulty.value,
        focus=QUIZ_DIFFICULTY_FOCUS[difficulty],
    )
    prompt = (
        f"Context: {_truncate_context(notes_context)}\n"
        "Generate the quiz JSON based on the context and the files attached."
    )
    text = await generate_content(system_prompt, [_user_turn(prompt, files)], temperature=0.5)
    questions = _parse_json_array(text, "questions")

    try:
        return [
            QuizQuestion(
                id=index + 1,
                question=item["question"],
                options=item["options"],
                correct_answer_index=item["correctAnswerIndex"],
            )
            for index, item in enumerate(questions)
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidResponseError(f"Malformed quiz question in AI response: {e}")


async def get_motivational_message(score: int, total: int) -> str:
    """Short coaching message for a quiz score. Never raises."""
    try:
        percentage = round(score / total * 100)
        prompt = (
            f"A student scored {score} out of {total} ({percentage}%). "
            "Give a message based on this score (Low < 60%, Med 60-85%, High > 85%)."
        )
        text = await generate_content(
            MOTIVATION_SYSTEM_PROMPT,
            [{"role": "user", "content": prompt}],
            max_tokens=200,
        )
        return text.strip() if text and text.strip() else MOTIVATION_FALLBACK
    except Exception as e:
        logger.warning(f"Motivational message unavailable, using fallback | error={e}")
        return MOTIVATION_FALLBACK


def build_chat_system_prompt(context: StudyContext) -> str:
    if context.notes:
        notes = f"Study Notes Content:\n{context.notes[:CHAT_NOTES_LIMIT]}"
    else:
        notes = "No study notes generated yet."

    if context.flashcards:
        sample = "\n".join(
            f"Q: {card.question} A: {card.answer}"
            for card in context.flashcards[:CHAT_FLASHCARD_SAMPLE]
        )
        flashcards = f"Flashcards Sample:\n{sample}"
    else:
        flashcards = "No flashcards generated."

    if context.quiz_results:
        scores = "\n".join(f"Score: {r.score}/{r.total}" for r in context.quiz_results)
        quiz = f"Recent Quiz Results:\n{scores}"
    else:
        quiz = "No quizzes taken."

    return CHAT_SYSTEM_PROMPT.format(notes=notes, flashcards=flashcards, quiz=quiz)


def build_chat_messages(
    message: str,
    history: list[ChatMessage],
    attachment: FileData | None = None,
) -> list[dict]:
    """Provider turns for the chat: filtered history plus the current message."""
    turns = []
    for entry in history:
        if entry.role not in ("user", "model"):
            continue
        content = [{"type": "text", "text": entry.text}]
        if entry.attachment and entry.role == "user":
            content.append(to_content_block(entry.attachment))
        turns.append({
            "role": "assistant" if entry.role == "model" else "user",
            "content": content,
        })

    current = [{"type": "text", "text": message}]
    if attachment:
        current.append(to_content_block(attachment))
    turns.append({"role": "user", "content": current})
    return turns


async def get_chat_response(
    message: str,
    history: list[ChatMessage],
    context: StudyContext,
    attachment: FileData | None = None,
) -> str:
    """
    Answer a chat message using the student's notes, flashcards and quiz scores.

    An empty provider reply becomes ``CHAT_EMPTY_REPLY``; provider errors propagate.
    """
    logger.info(f"Chat request | history={len(history)} | attachment={attachment is not None}")
    text = await generate_content(
        build_chat_system_prompt(context),
        build_chat_messages(message, history, attachment),
    )
    if not text or not text.strip():
        logger.warning("Chat reply was empty, returning fixed reply")
        return CHAT_EMPTY_REPLY
    return text
