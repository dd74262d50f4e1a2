"""End-to-end tests for the account endpoints."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from burger_api.api import create_app
from burger_api.config import Settings, resolve_catalog_path

EMAIL = "romatest@yandex.ru"
PASSWORD = "12345"
NAME = "Roms"


@pytest.fixture()
def client(tmp_path: Path):
    settings = Settings(
        database_path=tmp_path / "burgers.sqlite3",
        catalog_path=resolve_catalog_path(None),
    )
    with TestClient(create_app(settings=settings)) as test_client:
        yield test_client


def _register(client: TestClient, email: str = EMAIL, password: str = PASSWORD, name: str = NAME):
    return client.post("/api/auth/register", json={"email": email, "password": password, "name": name})


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": token}


def test_register_returns_user_and_tokens(client: TestClient) -> None:
    response = _register(client)

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["success"] is True
    assert payload["user"] == {"email": EMAIL, "name": NAME}
    assert payload["accessToken"].startswith("Bearer ")
    assert payload["refreshToken"]


def test_register_is_available_without_api_prefix(client: TestClient) -> None:
    response = client.post("/register", json={"email": EMAIL, "password": PASSWORD, "name": NAME})

    assert response.status_code == 200


def test_duplicate_registration_fails_without_tokens(client: TestClient) -> None:
    assert _register(client).status_code == 200

    response = _register(client)

    assert response.status_code == 403
    payload = response.json()
    assert payload == {"success": False, "message": "User already exists"}
    assert "accessToken" not in payload
    assert "refreshToken" not in payload
    assert "user" not in payload


@pytest.mark.parametrize(
    "body",
    [
        {"password": "1234", "name": NAME},
        {"email": EMAIL, "name": NAME},
        {"email": EMAIL, "password": PASSWORD},
        {"email": None, "password": "1234", "name": NAME},
        {"email": "", "password": "1234", "name": NAME},
        {"email": EMAIL, "password": "", "name": NAME},
        {"email": EMAIL, "password": PASSWORD, "name": ""},
        {},
    ],
)
def test_register_requires_all_fields(client: TestClient, body) -> None:
    response = client.post("/api/auth/register", json=body)

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "message": "Email, password and name are required fields",
    }


def test_register_without_body_is_missing_fields(client: TestClient) -> None:
    response = client.post("/api/auth/register")

    assert response.status_code == 403
    assert response.json()["message"] == "Email, password and name are required fields"


def test_register_with_wrong_field_types_is_rejected(client: TestClient) -> None:
    response = client.post("/api/auth/register", json={"email": 42, "password": PASSWORD, "name": NAME})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid request body"}


def test_login_returns_fresh_tokens(client: TestClient) -> None:
    registered = _register(client).json()

    response = client.post("/api/auth/login", json={"email": EMAIL, "password": PASSWORD})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["user"]["email"] == EMAIL
    assert payload["accessToken"].startswith("Bearer ")
    assert payload["accessToken"] != registered["accessToken"]
    assert payload["refreshToken"]


@pytest.mark.parametrize(
    "body",
    [
        {"email": "wrong_romatest@yandex.ru", "password": PASSWORD},
        {"email": EMAIL, "password": "wrong_pass"},
        {"email": None, "password": PASSWORD},
        {"email": EMAIL, "password": None},
        {"email": "", "password": PASSWORD},
        {"email": EMAIL, "password": ""},
        {},
    ],
)
def test_login_failures_are_identical(client: TestClient, body) -> None:
    _register(client)

    response = client.post("/api/auth/login", json=body)

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "email or password are incorrect"}


def test_profile_round_trip(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]

    response = client.get("/api/auth/user", headers=_auth(token))

    assert response.status_code == 200
    assert response.json() == {"success": True, "user": {"email": EMAIL, "name": NAME}}
    assert client.get("/account", headers=_auth(token)).json()["user"]["email"] == EMAIL


@pytest.mark.parametrize("headers", [{}, {"Authorization": ""}, {"Authorization": "Bearer nope"}])
def test_profile_requires_token(client: TestClient, headers) -> None:
    response = client.get("/api/auth/user", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "You should be authorised"}


def test_update_email(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]

    response = client.patch(
        "/api/auth/user",
        headers=_auth(token),
        json={"email": "romatest-update@yandex.ru", "password": PASSWORD, "name": NAME},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "user": {"email": "romatest-update@yandex.ru", "name": NAME},
    }


def test_update_only_name_keeps_email(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]

    response = client.patch("/api/auth/user", headers=_auth(token), json={"name": "New_Roms"})

    assert response.status_code == 200
    profile = client.get("/api/auth/user", headers=_auth(token)).json()
    assert profile["user"] == {"email": EMAIL, "name": "New_Roms"}


def test_update_password_changes_login(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]

    response = client.patch("/api/auth/user", headers=_auth(token), json={"password": "newPass12345"})
    assert response.status_code == 200
    assert response.json()["user"] == {"email": EMAIL, "name": NAME}

    old = client.post("/api/auth/login", json={"email": EMAIL, "password": PASSWORD})
    new = client.post("/api/auth/login", json={"email": EMAIL, "password": "newPass12345"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_update_all_fields(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]

    response = client.patch(
        "/api/auth/user",
        headers=_auth(token),
        json={"email": "all-new@yandex.ru", "password": "newPass12345", "name": "New_Roms"},
    )

    assert response.status_code == 200
    assert response.json()["user"] == {"email": "all-new@yandex.ru", "name": "New_Roms"}


def test_update_requires_token(client: TestClient) -> None:
    response = client.patch(
        "/api/auth/user",
        headers={"Authorization": ""},
        json={"email": "no-auth@yandex.ru", "password": PASSWORD, "name": "Roma"},
    )

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "You should be authorised"}


def test_update_to_existing_email_fails(client: TestClient) -> None:
    token = _register(client).json()["accessToken"]
    assert _register(client, email="second-romatest@yandex.ru", name="SecondRoma").status_code == 200

    response = client.patch(
        "/api/auth/user",
        headers=_auth(token),
        json={"email": "second-romatest@yandex.ru", "password": PASSWORD, "name": "SecondRoma"},
    )

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "User with such email already exists"}
    profile = client.get("/api/auth/user", headers=_auth(token)).json()
    assert profile["user"] == {"email": EMAIL, "name": NAME}


def test_delete_account_revokes_tokens(client: TestClient) -> None:
    registered = _register(client).json()
    login = client.post("/api/auth/login", json={"email": EMAIL, "password": PASSWORD}).json()

    response = client.delete("/api/auth/user", headers=_auth(registered["accessToken"]))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "User successfully removed"}
    for token in (registered["accessToken"], login["accessToken"]):
        assert client.get("/api/auth/user", headers=_auth(token)).status_code == 401
    assert client.post("/api/auth/login", json={"email": EMAIL, "password": PASSWORD}).status_code == 401
    assert client.post("/api/auth/token", json={"token": login["refreshToken"]}).status_code == 401
    assert _register(client).status_code == 200


def test_delete_requires_token(client: TestClient) -> None:
    response = client.delete("/api/auth/user")

    assert response.status_code == 401
    assert response.json()["message"] == "You should be authorised"


def test_refresh_token_rotates_pair(client: TestClient) -> None:
    registered = _register(client).json()

    response = client.post("/api/auth/token", json={"token": registered["refreshToken"]})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["accessToken"].startswith("Bearer ")
    assert client.get("/api/auth/user", headers=_auth(payload["accessToken"])).status_code == 200
    assert client.get("/api/auth/user", headers=_auth(registered["accessToken"])).status_code == 401

    reused = client.post("/api/auth/token", json={"token": registered["refreshToken"]})
    assert reused.status_code == 401
    assert reused.json() == {"success": False, "message": "Token is invalid"}


def test_logout_revokes_access_token(client: TestClient) -> None:
    registered = _register(client).json()

    response = client.post("/api/auth/logout", json={"token": registered["refreshToken"]})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Successful logout"}
    assert client.get("/api/auth/user", headers=_auth(registered["accessToken"])).status_code == 401

    again = client.post("/api/auth/logout", json={"token": registered["refreshToken"]})
    assert again.status_code == 401


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
