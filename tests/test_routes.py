"""
test_routes.py - HTTP tests for the API routers

Runs the FastAPI app in-process with TestClient (no lifespan, so no Alembic
run). ``get_db`` is pointed at a temporary SQLite file built from
schema.sql and the AI client is replaced with a mock, so no model server is
needed.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from microlearn.db.database import SCHEMA_PATH, connect, get_db
from microlearn.server import app
from microlearn.services.ai_client import LESSON_FALLBACK_MESSAGE, AIClient, get_ai_client
from microlearn.services.conversation_memory import ConversationMemory

PASSWORD = "correct-horse-battery"


def model_server_down():
    """Patch the completion call so every model request fails like a refused connection."""
    return patch(
        "microlearn.services.ai_client._chat_completion",
        AsyncMock(side_effect=RuntimeError("connection refused")),
    )


def use_real_ai_client():
    app.dependency_overrides[get_ai_client] = lambda: AIClient(ConversationMemory())


@pytest.fixture
def fake_ai():
    ai = MagicMock(spec=AIClient)
    ai.generate_response.return_value = "pong"
    ai.get_memory_stats.return_value = {"totalUsers": 0, "totalExchanges": 0, "userStats": []}
    return ai


@pytest.fixture
def client(tmp_path, fake_ai):
    db_path = str(tmp_path / "routes.db")

    async def build_schema():
        db = await connect(db_path)
        await db.executescript(SCHEMA_PATH.read_text())
        await db.commit()
        await db.close()

    asyncio.run(build_schema())

    async def override_get_db():
        db = await connect(db_path)
        try:
            yield db
        finally:
            await db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: fake_ai
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="learner@example.com", name="Lee"):
    resp = client.post("/api/auth/register", json={"name": name, "email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    return body["userId"], {"Authorization": f"Bearer {body['token']}"}


def register_admin(client):
    return register(client, "admin@example.com", "Admin")


def setup_interests(client, user_id, headers, interests=("Python", "Cooking")):
    resp = client.post(f"/api/users/{user_id}/setup", json={"interests": list(interests)}, headers=headers)
    assert resp.status_code == 200, resp.text


class TestAuth:

    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_api_requires_token(self, client):
        resp = client.get("/api/users/1")
        assert resp.status_code == 401

    def test_ai_test_is_public(self, client, fake_ai):
        resp = client.get("/api/ai/test")
        assert resp.json() == {"success": True, "response": "pong"}

    def test_register_login_me(self, client):
        user_id, headers = register(client)

        resp = client.post("/api/auth/login", json={"email": "LEARNER@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["userId"] == user_id
        assert resp.json()["role"] == "learner"
        assert resp.json()["hasInterests"] is False

        me = client.get("/api/auth/me", headers=headers).json()
        assert me["email"] == "learner@example.com"

    def test_duplicate_email(self, client):
        register(client)
        resp = client.post("/api/auth/register", json={"name": "X", "email": "learner@example.com", "password": PASSWORD})
        assert resp.status_code == 409

    def test_wrong_password(self, client):
        register(client)
        resp = client.post("/api/auth/login", json={"email": "learner@example.com", "password": "nope-nope"})
        assert resp.status_code == 401

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/register", json={"name": "X", "email": "x@example.com", "password": "short"})
        assert resp.status_code == 422

    def test_admin_role_from_config(self, client):
        _, headers = register_admin(client)
        assert client.get("/api/auth/me", headers=headers).json()["role"] == "admin"

    def test_invalid_token(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


class TestUsers:

    def test_setup_requires_interests(self, client):
        user_id, headers = register(client)
        resp = client.post(f"/api/users/{user_id}/setup", json={"interests": ["  "]}, headers=headers)
        assert resp.status_code == 400

    def test_setup_and_profile(self, client):
        user_id, headers = register(client)
        resp = client.post(
            f"/api/users/{user_id}/setup",
            json={"interests": ["Python"], "frequency": 5, "granularity": "high"},
            headers=headers,
        )
        assert resp.json()["message"] == "User setup completed successfully"

        user = client.get(f"/api/users/{user_id}", headers=headers).json()["user"]
        assert user["interests"] == ["Python"]
        assert user["preferences"]["granularity"] == "high"
        assert user["knowledgeProfile"] == {}
        assert user["learningHistory"] == []

    def test_cannot_read_other_users(self, client):
        user_id, _ = register(client)
        _, other_headers = register(client, "other@example.com")
        assert client.get(f"/api/users/{user_id}", headers=other_headers).status_code == 403

    def test_admin_can_read_any_user(self, client):
        user_id, _ = register(client)
        _, admin_headers = register_admin(client)
        assert client.get(f"/api/users/{user_id}", headers=admin_headers).status_code == 200

    def test_partial_update(self, client):
        user_id, headers = register(client)
        assert client.put(f"/api/users/{user_id}", json={}, headers=headers).status_code == 400

        resp = client.put(f"/api/users/{user_id}", json={"difficulty": 80, "granularity": "low"}, headers=headers)
        assert resp.json()["success"] is True
        user = client.get(f"/api/users/{user_id}", headers=headers).json()["user"]
        assert user["preferences"]["difficulty"] == 80
        assert user["preferences"]["granularity"] == "low"

    def test_invalid_granularity(self, client):
        user_id, headers = register(client)
        resp = client.put(f"/api/users/{user_id}", json={"granularity": "extreme"}, headers=headers)
        assert resp.status_code == 422

    def test_changing_interests_drops_cached_topic_structure(self, client, fake_ai):
        user_id, headers = register(client)
        setup_interests(client, user_id, headers, ["Python"])
        fake_ai.forget_topic_structure.assert_not_called()

        client.put(f"/api/users/{user_id}", json={"interests": ["Python"]}, headers=headers)
        fake_ai.forget_topic_structure.assert_not_called()

        client.put(f"/api/users/{user_id}", json={"interests": ["Python", "History"]}, headers=headers)
        fake_ai.forget_topic_structure.assert_called_once_with(["Python"])

        setup_interests(client, user_id, headers, ["Cooking"])
        fake_ai.forget_topic_structure.assert_called_with(["Python", "History"])


class TestKnowledge:

    def test_update_and_fetch(self, client):
        user_id, headers = register(client)
        resp = client.post(
            "/api/knowledge/update",
            json={"topic": "Python", "concept": "Loops", "proficiencyLevel": 1, "confidenceScore": 0.6},
            headers=headers,
        )
        assert resp.json()["success"] is True

        rows = client.get(f"/api/knowledge/{user_id}", headers=headers).json()
        assert len(rows) == 1
        assert rows[0]["proficiency_level"] == 1
        assert rows[0]["confidence_score"] == 0.6

    def test_cannot_write_for_another_user(self, client):
        user_id, _ = register(client)
        _, other_headers = register(client, "other@example.com")
        resp = client.post(
            "/api/assessment",
            json={"userId": user_id, "topic": "Python", "concept": "Loops", "userAnswer": "a", "correctAnswer": "a"},
            headers=other_headers,
        )
        assert resp.status_code == 403

    def test_assessment_never_lowers_proficiency(self, client):
        _, headers = register(client)
        body = {"topic": "Python", "concept": "Loops", "correctAnswer": "Range"}

        first = client.post("/api/assessment", json={**body, "userAnswer": " range "}, headers=headers).json()
        assert first["correct"] is True
        assert first["proficiencyLevel"] == 1
        assert first["confidenceScore"] == 0.8

        second = client.post("/api/assessment", json={**body, "userAnswer": "while"}, headers=headers).json()
        assert second["correct"] is False
        assert second["proficiencyLevel"] == 1
        assert second["confidenceScore"] == pytest.approx(0.6)

    def test_recommendations_from_catalog(self, client):
        user_id, headers = register(client)
        _, admin_headers = register_admin(client)

        concepts = [
            {"name": "Variables", "difficulty": 1},
            {"name": "Functions", "difficulty": 2, "prerequisites": ["Variables"]},
            {"name": "Closures", "difficulty": 4},
        ]
        assert client.post(
            "/api/knowledge/init", json={"topic": "JavaScript", "concepts": concepts}, headers=headers
        ).status_code == 403
        resp = client.post("/api/knowledge/init", json={"topic": "JavaScript", "concepts": concepts}, headers=admin_headers)
        assert resp.json() == {"success": True, "inserted": 3}

        client.post(
            "/api/knowledge/update",
            json={"topic": "JavaScript", "concept": "Variables", "proficiencyLevel": 2, "confidenceScore": 0.9},
            headers=headers,
        )
        recs = client.get(f"/api/recommendations/{user_id}", params={"topic": "JavaScript"}, headers=headers).json()
        assert [r["concept"] for r in recs] == ["Functions"]
        assert recs[0]["prerequisites"] == ["Variables"]

    def test_too_easy_escalates(self, client, fake_ai):
        user_id, headers = register(client)
        fake_ai.generate_escalated_content.return_value = {"content": "Harder", "type": "info", "difficulty": 75}

        resp = client.post(
            "/api/too-easy",
            json={"topic": "Python", "concept": "Loops", "currentDifficulty": 50},
            headers=headers,
        ).json()
        assert resp["escalated"] is True
        assert resp["difficulty"] == 75
        assert resp["newContent"]["content"] == "Harder"

        user = client.get(f"/api/users/{user_id}", headers=headers).json()["user"]
        assert user["knowledgeProfile"]["Python"]["Loops"]["proficiency"] == 2
        assert user["knowledgeProfile"]["Python"]["Loops"]["confidence"] == 0.9
        assert user["preferences"]["difficulty"] == 75

    def test_too_easy_with_model_server_down(self, client):
        user_id, headers = register(client)
        use_real_ai_client()

        with model_server_down():
            resp = client.post("/api/too-easy", json={"topic": "Cooking", "concept": "Seasoning"}, headers=headers)

        body = resp.json()
        assert resp.status_code == 200
        assert body["escalated"] is False
        assert "newContent" not in body
        assert "Cooking" in body["message"]

        # Feedback is still recorded
        user = client.get(f"/api/users/{user_id}", headers=headers).json()["user"]
        assert user["knowledgeProfile"]["Cooking"]["Seasoning"]["proficiency"] == 2
        assert user["preferences"]["difficulty"] == 75

    def test_analyze_text_updates_profile(self, client):
        user_id, headers = register(client)
        resp = client.post(
            "/api/analyze-text",
            json={
                "topic": "JavaScript",
                "concept": "Closures",
                "userInput": "a closure keeps the outer scope alive",
                "expectedAnswer": "closure outer scope",
            },
            headers=headers,
        ).json()
        assert resp["analysis"]["isCorrect"] is True
        assert resp["analysis"]["difficultyLevel"] == "advanced"

        rows = client.get(f"/api/knowledge/{user_id}", headers=headers).json()
        assert rows[0]["proficiency_level"] == 1
        assert rows[0]["confidence_score"] == 0.8


class TestContentAndLessons:

    def test_content_includes_starter_lessons(self, client):
        _, headers = register(client)
        items = client.get("/api/content/Cooking", params={"granularity": "low"}, headers=headers).json()
        assert [i["content"] for i in items] == ["Salt enhances the natural flavors of ingredients."]

    def test_lesson_request_needs_interests(self, client, fake_ai):
        from microlearn.services.ai_client import NoInterestsError

        _, headers = register(client)
        fake_ai.generate_personalized_lesson.side_effect = NoInterestsError("no interests")
        assert client.post("/api/lesson/request", json={}, headers=headers).status_code == 400

    def test_lesson_is_stored_and_progress_recorded(self, client, fake_ai):
        user_id, headers = register(client)
        setup_interests(client, user_id, headers)
        fake_ai.generate_personalized_lesson.return_value = {
            "content": "Which keyword makes a generator?",
            "type": "quiz",
            "topic": "Python",
            "concept": "Generators",
            "difficulty": 50,
            "options": ["return", "yield"],
            "correctAnswer": 1,
            "correctAnswerText": "yield",
        }

        lesson = client.post("/api/lesson/request", json={}, headers=headers).json()["lesson"]
        content_id = lesson["contentId"]

        user_data = fake_ai.generate_personalized_lesson.call_args.args[1]
        assert user_data["interests"] == ["Python", "Cooking"]

        stored = client.get("/api/content/Python", headers=headers).json()
        assert stored[0]["id"] == content_id

        resp = client.post("/api/progress", json={"contentId": content_id, "completed": True, "score": 100}, headers=headers)
        assert resp.json()["success"] is True

        progress = client.get(f"/api/progress/{user_id}", headers=headers).json()
        assert len(progress) == 1
        assert progress[0]["concept"] == "Generators"

        history = client.get(f"/api/users/{user_id}", headers=headers).json()["user"]["learningHistory"]
        assert history[0]["score"] == 100

    def test_fallback_lesson_is_not_stored(self, client, fake_ai):
        user_id, headers = register(client)
        setup_interests(client, user_id, headers)
        fake_ai.generate_personalized_lesson.return_value = {
            "content": LESSON_FALLBACK_MESSAGE,
            "type": "info",
            "topic": "Python",
            "concept": "Learning",
            "difficulty": 50,
            "reasoning": "Fallback due to parsing error",
        }

        lesson = client.post("/api/lesson/request", json={}, headers=headers).json()["lesson"]
        assert "contentId" not in lesson
        assert client.get("/api/content/Python", headers=headers).json() == []

    def test_stored_lessons_follow_learner_granularity(self, client, fake_ai):
        user_id, headers = register(client)
        resp = client.post(
            f"/api/users/{user_id}/setup", json={"interests": ["Python"], "granularity": "high"}, headers=headers
        )
        assert resp.status_code == 200
        fake_ai.generate_personalized_lesson.return_value = {
            "content": "Tuples are immutable.", "type": "info", "topic": "Python", "concept": "Tuples", "difficulty": 50,
        }
        content_id = client.post("/api/lesson/request", json={}, headers=headers).json()["lesson"]["contentId"]

        for granularity in ("auto", "flexible", "high"):
            items = client.get("/api/content/Python", params={"granularity": granularity}, headers=headers).json()
            assert [i["id"] for i in items] == [content_id]
        assert client.get("/api/content/Python", params={"granularity": "low"}, headers=headers).json() == []

    def test_progress_for_missing_content(self, client):
        _, headers = register(client)
        resp = client.post("/api/progress", json={"contentId": 999, "completed": True}, headers=headers)
        assert resp.status_code == 404


class TestAIEndpoints:

    def test_validate_quiz(self, client):
        _, headers = register(client)
        body = {"correctAnswerIndex": 1, "correctAnswerText": "yield"}

        right = client.post("/api/ai/validate-quiz", json={**body, "userAnswer": 1}, headers=headers).json()
        assert right["isCorrect"] is True
        assert right["feedback"] == "Correct! yield"

        wrong = client.post("/api/ai/validate-quiz", json={**body, "userAnswer": 0}, headers=headers).json()
        assert wrong["isCorrect"] is False
        assert wrong["feedback"] == "Not quite. The correct answer is: yield"

    def test_generate_content_uses_recommended_difficulty(self, client, fake_ai):
        user_id, headers = register(client)
        fake_ai.generate_learning_content.return_value = {"content": "x", "type": "info"}
        client.post(
            "/api/knowledge/update",
            json={"topic": "Python", "concept": "Loops", "proficiencyLevel": 2, "confidenceScore": 0.9},
            headers=headers,
        )

        resp = client.post("/api/ai/generate-content", json={"topic": "Python", "concept": "Lists"}, headers=headers)
        assert resp.json()["content"] == {"content": "x", "type": "info"}
        fake_ai.generate_learning_content.assert_awaited_once_with(user_id, "Python", "Lists", 75)

    def test_escalation_reports_unreachable_model_server(self, client):
        _, headers = register(client)
        use_real_ai_client()

        with model_server_down():
            resp = client.post(
                "/api/ai/escalate-content", json={"topic": "Python", "concept": "Loops"}, headers=headers
            )
        assert resp.status_code == 503

    def test_chat_uses_caller_memory(self, client, fake_ai):
        user_id, headers = register(client)
        resp = client.post("/api/ai/chat", json={"message": "Explain yield"}, headers=headers)
        assert resp.json() == {"success": True, "response": "pong"}
        fake_ai.generate_response.assert_awaited_once_with("Explain yield", user_id, None)

    def test_recommendations_default_to_stored_profile(self, client, fake_ai):
        user_id, headers = register(client)
        setup_interests(client, user_id, headers, ["History"])
        fake_ai.generate_personalized_recommendations.return_value = [{"topic": "History"}]

        resp = client.post("/api/ai/recommendations", json={}, headers=headers).json()
        assert resp["recommendations"] == [{"topic": "History"}]
        fake_ai.generate_personalized_recommendations.assert_awaited_once_with(user_id, ["History"], {})

    def test_memory_controls(self, client, fake_ai):
        user_id, headers = register(client)
        _, admin_headers = register_admin(client)

        assert client.get("/api/ai/memory/stats", headers=headers).status_code == 403
        assert client.get("/api/ai/memory/stats", headers=admin_headers).json()["stats"]["totalUsers"] == 0

        assert client.delete(f"/api/ai/memory/user/{user_id}", headers=headers).json()["success"] is True
        fake_ai.clear_user_memory.assert_called_once_with(user_id)

        assert client.delete("/api/ai/memory/all", headers=headers).status_code == 403
        client.delete("/api/ai/memory/all", headers=admin_headers)
        fake_ai.clear_all_memory.assert_called_once()


class TestAdmin:

    def test_list_and_delete_user(self, client, fake_ai):
        user_id, headers = register(client)
        admin_id, admin_headers = register_admin(client)
        client.post(
            "/api/knowledge/update",
            json={"topic": "Python", "concept": "Loops", "proficiencyLevel": 1, "confidenceScore": 0.8},
            headers=headers,
        )

        assert client.get("/api/admin/users", headers=headers).status_code == 403
        users = client.get("/api/admin/users", headers=admin_headers).json()["users"]
        assert {u["id"] for u in users} == {user_id, admin_id}
        assert all("password_hash" not in u for u in users)

        resp = client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).json()
        assert resp["deletedKnowledge"] == 1
        assert resp["deletedProgress"] == 0
        fake_ai.clear_user_memory.assert_called_once_with(user_id)

        assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 404
        assert client.delete(f"/api/admin/users/{admin_id}", headers=admin_headers).status_code == 400
