import json

from scholar.core.exceptions import ConfigurationError, ProviderError

TEXT_FILE = {"name": "notes.txt", "type": "text/plain", "data": "UGhvdG9zeW50aGVzaXM="}


class TestNotesEndpoint:
    def test_generates_notes(self, client, fake_ai):
        fake_ai.reply = "# Photosynthesis"
        resp = client.post("/api/study/notes", json={"files": [TEXT_FILE]})
        assert resp.status_code == 200
        assert resp.json() == {"notes": "# Photosynthesis"}

    def test_empty_notes_returns_502(self, client, fake_ai):
        fake_ai.reply = ""
        resp = client.post("/api/study/notes", json={"files": [TEXT_FILE]})
        assert resp.status_code == 502
        assert resp.json()["message"] == "No notes generated"

    def test_unsupported_file_returns_400(self, client, fake_ai):
        bad = {"name": "movie.mp4", "type": "video/mp4", "data": "AAAA"}
        resp = client.post("/api/study/notes", json={"files": [bad]})
        assert resp.status_code == 400
        assert "Unsupported file type" in resp.json()["message"]
        assert fake_ai.requests == []

    def test_no_keys_and_no_proxy_key(self, client, fake_ai):
        fake_ai.error = ConfigurationError()
        resp = client.post("/api/study/notes", json={"files": []})
        assert resp.status_code == 400
        assert resp.json()["message"] == "No AI API keys configured"


class TestFlashcardsEndpoint:
    def test_camel_case_wire_format(self, client, fake_ai):
        fake_ai.reply = json.dumps({"flashcards": [{"question": "Q", "answer": "A"}]})
        resp = client.post(
            "/api/study/flashcards",
            json={"files": [], "notesContext": "some notes", "currentCount": 3},
        )
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"flashcards": [{"id": 4, "question": "Q", "answer": "A", "isLearned": False}]}

    def test_invalid_json_returns_502(self, client, fake_ai):
        fake_ai.reply = "not json"
        resp = client.post("/api/study/flashcards", json={"files": []})
        assert resp.status_code == 502

    def test_negative_count_rejected(self, client, fake_ai):
        resp = client.post("/api/study/flashcards", json={"currentCount": -1})
        assert resp.status_code == 400


class TestQuizEndpoint:
    def test_quiz(self, client, fake_ai):
        fake_ai.reply = json.dumps({"questions": [
            {"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswerIndex": 1},
        ]})
        resp = client.post("/api/study/quiz", json={"notesContext": "n", "difficulty": "Hard"})
        assert resp.status_code == 200
        question = resp.json()["questions"][0]
        assert question["id"] == 1
        assert question["correctAnswerIndex"] == 1

    def test_invalid_difficulty(self, client, fake_ai):
        resp = client.post("/api/study/quiz", json={"difficulty": "Extreme"})
        assert resp.status_code == 400


class TestMotivationEndpoint:
    def test_fallback_when_ai_fails(self, client, fake_ai):
        fake_ai.error = ProviderError()
        resp = client.post("/api/study/motivation", json={"score": 4, "total": 10})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Keep learning, you're doing great!"}


class TestChatEndpoint:
    def test_chat_with_context(self, client, fake_ai):
        fake_ai.reply = "Here's a tip."
        resp = client.post("/api/study/chat", json={
            "message": "Help me study",
            "history": [{"id": "1", "role": "user", "text": "hi", "timestamp": 1}],
            "context": {
                "notes": "Cells",
                "flashcards": [{"id": 1, "question": "Q", "answer": "A", "isLearned": True}],
                "quizResults": [{"score": 8, "total": 10, "feedback": ""}],
            },
        })
        assert resp.status_code == 200
        assert resp.json() == {"text": "Here's a tip."}
        system = fake_ai.requests[0]["system"]
        assert "Cells" in system
        assert "Score: 8/10" in system

    def test_chat_requires_message(self, client, fake_ai):
        resp = client.post("/api/study/chat", json={"message": ""})
        assert resp.status_code == 400

    def test_empty_chat_reply_is_still_200(self, client, fake_ai):
        fake_ai.reply = ""
        resp = client.post("/api/study/chat", json={"message": "hello?"})
        assert resp.status_code == 200
        assert resp.json() == {"text": "I couldn't generate a response."}
