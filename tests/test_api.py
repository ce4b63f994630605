"""
Тесты REST API на настоящем приложении.

База во временной директории, время зафиксировано на 2024-01-03 12:00 UTC.
"""

import inspect

import pytest
from pydantic import ValidationError as PydanticValidationError

from dashboard.app import app
from dashboard.config import settings
from dashboard.core.security import create_access_token
from dashboard.dependencies import get_current_user, get_current_admin
from shared.models import ProgressSummarySchema


# =============================================================================
# Авторизация
# =============================================================================


class TestAuth:

    def test_register_returns_token_and_user(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "Ada@Example.com", "password": "secret1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["email"] == "ada@example.com"
        assert body["user"]["protocols"] == []
        assert body["user"]["preferences"] == {"notifications": True, "theme": "light"}
        assert "passwordHash" not in body["user"]

    def test_register_missing_fields(self, client):
        response = client.post("/api/auth/register", json={"email": "ada@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Please provide all required fields"

    def test_register_short_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "ada@example.com", "password": "12345"},
        )
        assert response.status_code == 400

    def test_register_duplicate_email(self, client, register_user):
        register_user()
        response = client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "ADA@example.com", "password": "secret1"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User already exists with this email"

    def test_login(self, client, register_user):
        register_user()
        response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret1"})

        assert response.status_code == 200
        assert response.json()["user"]["lastLogin"] is not None

    def test_login_wrong_password(self, client, register_user):
        register_user()
        response = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "wrong!"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "ada@example.com"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Please provide email and password"

    def test_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Ada"

    def test_me_without_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "No token, authorization denied"

    def test_me_with_forged_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Token is not valid"

    def test_token_for_deleted_user(self, client):
        token = create_access_token("unknown-user")
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


# =============================================================================
# Библиотека
# =============================================================================


class TestLibrary:

    def test_categories(self, client):
        categories = client.get("/api/library/categories").json()
        assert len(categories) == 6
        assert sum(category["count"] for category in categories) == 23

    def test_authors(self, client):
        names = [author["name"] for author in client.get("/api/library/authors").json()]
        assert "Andrew Huberman" in names

    def test_filter_by_category(self, client):
        body = client.get("/api/library/protocols", params={"category": "morning"}).json()
        assert body["total"] == 5
        assert all(item["category"] == "morning" for item in body["protocols"])
        assert "timeRequired" in body["protocols"][0]

    def test_search(self, client):
        body = client.get("/api/library/protocols", params={"search": "wim hof"}).json()
        assert body["total"] == len(body["protocols"])
        assert any(item["title"] == "Wim Hof Breathing Method" for item in body["protocols"])

    def test_unknown_protocol(self, client):
        assert client.get("/api/library/protocols/unknown").status_code == 404


# =============================================================================
# Стена и отметки
# =============================================================================


class TestWall:

    def test_add_from_library(self, client, auth_headers):
        response = client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)

        assert response.status_code == 201
        protocol = response.json()["protocol"]
        assert protocol["protocolId"] == "nsdr"
        assert protocol["title"] == "Non-Sleep Deep Rest (NSDR)"
        assert protocol["completionHistory"] == []

    def test_add_duplicate(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        response = client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Protocol already added to your wall"

    def test_add_custom_requires_title(self, client, auth_headers):
        response = client.post("/api/user/protocols", json={"protocolId": "walk"}, headers=auth_headers)
        assert response.status_code == 400

        response = client.post(
            "/api/user/protocols",
            json={"protocolId": "walk", "title": "Evening Walk", "timeRequired": "20 minutes"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["protocol"]["timeRequired"] == "20 minutes"

    def test_list_and_remove(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)

        listed = client.get("/api/user/protocols", headers=auth_headers).json()["protocols"]
        assert [p["protocolId"] for p in listed] == ["nsdr"]

        assert client.delete("/api/user/protocols/nsdr", headers=auth_headers).status_code == 200
        assert client.delete("/api/user/protocols/nsdr", headers=auth_headers).status_code == 404

    def test_toggle_defaults_to_today(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)

        response = client.post("/api/user/protocols/nsdr/completion", json={}, headers=auth_headers)
        body = response.json()
        assert response.status_code == 200
        assert body["completed"] is True
        assert body["protocol"]["completionHistory"][0]["date"] == "2024-01-03"

        response = client.post("/api/user/protocols/nsdr/completion", headers=auth_headers)
        assert response.json()["completed"] is False
        assert response.json()["protocol"]["completionHistory"] == []

    def test_toggle_explicit_date(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        response = client.post(
            "/api/user/protocols/nsdr/completion",
            json={"date": "2024-01-01T09:30:00.000Z", "notes": "before work"},
            headers=auth_headers,
        )
        entry = response.json()["protocol"]["completionHistory"][0]
        assert entry["date"] == "2024-01-01"
        assert entry["notes"] == "before work"
        assert entry["recordedAt"]

    def test_toggle_invalid_date(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        response = client.post(
            "/api/user/protocols/nsdr/completion", json={"date": "someday"}, headers=auth_headers
        )
        assert response.status_code == 400

    def test_toggle_unknown_protocol(self, client, auth_headers):
        response = client.post("/api/user/protocols/nsdr/completion", json={}, headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Protocol not found"

    def test_update_notes(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        client.put("/api/user/protocols/nsdr/completion", json={"notes": "first"}, headers=auth_headers)
        response = client.put(
            "/api/user/protocols/nsdr/completion", json={"notes": "second"}, headers=auth_headers
        )

        history = response.json()["protocol"]["completionHistory"]
        assert len(history) == 1
        assert history[0]["notes"] == "second"

    def test_history(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        for day in ("2024-01-02", "2024-01-03"):
            client.post("/api/user/protocols/nsdr/completion", json={"date": day}, headers=auth_headers)

        body = client.get("/api/user/protocols/nsdr/history", headers=auth_headers).json()
        assert len(body["history"]) == 7
        assert body["history"][-1] == {"date": "2024-01-03", "completed": True}
        assert body["successRate"] == 29

    def test_delete_user_data(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        response = client.delete("/api/user/data", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["user"]["protocols"] == []
        assert client.get("/api/auth/me", headers=auth_headers).status_code == 200

    def test_wall_requires_token(self, client):
        assert client.get("/api/user/protocols").status_code == 401


# =============================================================================
# Прогресс
# =============================================================================


class TestProgress:

    def test_empty_wall(self, client, auth_headers):
        body = client.get("/api/user/progress", headers=auth_headers).json()
        assert body["dailyCompliance"] == 0
        assert body["overallProgress"] == 0
        assert body["currentStreak"] == 0
        assert body["longestStreak"] == 0
        assert body["topPerforming"] == []
        assert body["needsAttention"] == []

    def test_summary(self, client, auth_headers):
        for protocol_id in ("nsdr", "cold-exposure", "ferriss-pomodoro"):
            client.post("/api/user/protocols", json={"protocolId": protocol_id}, headers=auth_headers)
        for protocol_id in ("nsdr", "cold-exposure"):
            for day in ("2024-01-01", "2024-01-02", "2024-01-03"):
                client.post(
                    f"/api/user/protocols/{protocol_id}/completion", json={"date": day}, headers=auth_headers
                )

        body = client.get("/api/user/progress", params={"timeframe": "week"}, headers=auth_headers).json()

        assert body["timeframe"] == "week"
        assert body["windowStart"] == "2023-12-31"
        assert body["dailyCompliance"] == 67
        assert body["overallProgress"] == 29
        assert body["currentStreak"] == 0
        assert body["daysApplied"] == 3
        assert [item["completionCount"] for item in body["topPerforming"]] == [3, 3]
        assert body["needsAttention"] == [{"title": "Pomodoro Technique", "completionCount": 0}]

    def test_day_timeframe(self, client, auth_headers):
        client.post("/api/user/protocols", json={"protocolId": "nsdr"}, headers=auth_headers)
        client.post("/api/user/protocols/nsdr/completion", json={}, headers=auth_headers)

        body = client.get("/api/user/progress", params={"timeframe": "day"}, headers=auth_headers).json()
        assert body["overallProgress"] == 100
        assert body["currentStreak"] == 1

    def test_invalid_timeframe(self, client, auth_headers):
        response = client.get("/api/user/progress", params={"timeframe": "year"}, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.parametrize("field", ["daily_compliance", "overall_progress"])
    def test_percentages_bounded(self, field):
        values = {
            "timeframe": "week", "window_start": "2023-12-31", "window_end": "2024-01-06",
            "total_protocols": 1, "daily_compliance": 50, "overall_progress": 50,
            "current_streak": 0, "longest_streak": 0, "days_applied": 0, "days_all_satisfied": 0,
        }
        ProgressSummarySchema(**values)

        values[field] = 101
        with pytest.raises(PydanticValidationError):
            ProgressSummarySchema(**values)


# =============================================================================
# Служебные маршруты
# =============================================================================


class TestService:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"]["stats"]["total_users"] == 0

    def test_info(self, client):
        assert client.get("/").json()["endpoints"]["progress"] == "/api/user/progress"

    def test_store_handlers_run_in_threadpool(self):
        blocking = {"/api/auth/register", "/api/auth/login", "/api/user/protocols", "/api/user/progress",
                    "/api/user/preferences", "/api/admin/users", "/api/health"}
        endpoints = [route.endpoint for route in app.routes if getattr(route, "path", None) in blocking]

        assert endpoints
        assert not any(inspect.iscoroutinefunction(endpoint) for endpoint in endpoints)
        assert not inspect.iscoroutinefunction(get_current_user)
        assert not inspect.iscoroutinefunction(get_current_admin)


# =============================================================================
# Настройки пользователя
# =============================================================================


class TestPreferences:

    def test_update_partial(self, client, auth_headers):
        response = client.put("/api/user/preferences", json={"theme": "dark"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["preferences"] == {"notifications": True, "theme": "dark"}

        me = client.get("/api/auth/me", headers=auth_headers).json()["user"]
        assert me["preferences"]["theme"] == "dark"

    def test_disable_notifications(self, client, auth_headers):
        response = client.put("/api/user/preferences", json={"notifications": False}, headers=auth_headers)
        assert response.json()["preferences"] == {"notifications": False, "theme": "light"}

    def test_invalid_theme(self, client, auth_headers):
        response = client.put("/api/user/preferences", json={"theme": "neon"}, headers=auth_headers)
        assert response.status_code == 400

    def test_requires_token(self, client):
        assert client.put("/api/user/preferences", json={"theme": "dark"}).status_code == 401


# =============================================================================
# Администрирование
# =============================================================================


@pytest.fixture
def admin_headers(client, database):
    response = client.post(
        "/api/auth/register",
        json={"name": "Root", "email": "root@example.com", "password": "secret1"},
    )
    body = response.json()
    database.set_user_role(body["user"]["id"], "admin")
    return {"Authorization": f"Bearer {body['token']}"}


class TestAdmin:

    def test_list_users_hides_passwords(self, client, auth_headers, admin_headers):
        response = client.get("/api/admin/users", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert {user["role"] for user in body["users"]} == {"user", "admin"}
        assert all("passwordHash" not in user for user in body["users"])

    def test_regular_user_forbidden(self, client, auth_headers):
        response = client.get("/api/admin/users", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. Admin only."

    def test_delete_user(self, client, database, register_user, admin_headers):
        user_id = register_user()["user"]["id"]

        response = client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)
        assert response.status_code == 200
        assert database.get_user(user_id) is None

        assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 404

    def test_cannot_delete_self(self, client, admin_headers):
        admin_id = client.get("/api/auth/me", headers=admin_headers).json()["user"]["id"]
        response = client.delete(f"/api/admin/users/{admin_id}", headers=admin_headers)
        assert response.status_code == 400

    def test_update_role(self, client, register_user, admin_headers):
        user_id = register_user()["user"]["id"]

        response = client.patch(
            f"/api/admin/users/{user_id}/role", json={"role": "admin"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json() == {
            "message": "User role updated successfully", "userId": user_id, "newRole": "admin"
        }

    def test_invalid_role(self, client, register_user, admin_headers):
        user_id = register_user()["user"]["id"]
        response = client.patch(
            f"/api/admin/users/{user_id}/role", json={"role": "owner"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid role"

    def test_cannot_demote_self(self, client, admin_headers):
        admin_id = client.get("/api/auth/me", headers=admin_headers).json()["user"]["id"]
        response = client.patch(
            f"/api/admin/users/{admin_id}/role", json={"role": "user"}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_admin_email_registers_as_admin(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_EMAILS", ["boss@example.com"])
        response = client.post(
            "/api/auth/register",
            json={"name": "Boss", "email": "Boss@Example.com", "password": "secret1"},
        )
        assert response.json()["user"]["role"] == "admin"
