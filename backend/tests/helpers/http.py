"""HTTP helpers shared by the API tests."""

from __future__ import annotations

from typing import Any

API = "/api/v1/auth"
PASSWORD = "correct-horse-battery"


def register(client, email: str, password: str = PASSWORD) -> dict[str, Any]:
    resp = client.post(f"{API}/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def login(
    client,
    email: str,
    device: str | None,
    password: str = PASSWORD,
    *,
    force_logout: str | None = None,
):
    headers = {"User-Agent": f"pytest/{device}"}
    if device is not None:
        headers["device-id"] = device
    if force_logout is not None:
        headers["force-logout"] = force_logout
    return client.post(
        f"{API}/login", json={"email": email, "password": password}, headers=headers
    )


def bearer(token: str, device: str | None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {token}"}
    if device is not None:
        headers["device-id"] = device
    return headers


def problem_code(resp) -> str:
    assert resp.mimetype == "application/problem+json", resp.get_data(as_text=True)
    return resp.get_json()["code"]
