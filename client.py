"""
HTTP client for the SplitWise API, used by front ends and scripts.

Every call takes a `Session`, which carries the base URL and the bearer
token. Logging in stores the token on that session; there is no
process-wide auth state.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("SPLITWISE_API_URL", "http://localhost:8000/api")
REQUEST_TIMEOUT = 10


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, reason: Optional[str] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.reason = reason


@dataclass
class Session:
    base_url: str = API_BASE_URL
    token: Optional[str] = None
    user: Optional[dict] = None
    http: requests.Session = field(default_factory=requests.Session)

    @property
    def authenticated(self) -> bool:
        return self.token is not None


def _request(session: Session, method: str, path: str, json: Optional[dict] = None) -> dict:
    headers = {}
    if session.token:
        headers["Authorization"] = f"Bearer {session.token}"
    url = session.base_url.rstrip("/") + path
    r = session.http.request(method, url, json=json, headers=headers, timeout=REQUEST_TIMEOUT)
    try:
        body = r.json()
    except ValueError:
        body = {}
    if r.status_code >= 400:
        message = body.get("message") or body.get("detail") or r.reason or "Request failed"
        logger.debug("%s %s failed with %s: %s", method, path, r.status_code, message)
        raise ApiError(r.status_code, str(message), body.get("reason"))
    return body


def _start(session: Session, body: dict) -> dict:
    session.token = body["token"]
    session.user = body["user"]
    return body["user"]


def register(session: Session, name: str, email: str, password: str) -> dict:
    body = _request(session, "POST", "/users/register", {"name": name, "email": email, "password": password})
    return _start(session, body)


def login(session: Session, email: str, password: str) -> dict:
    body = _request(session, "POST", "/users/login", {"email": email, "password": password})
    return _start(session, body)


def logout(session: Session) -> None:
    session.token = None
    session.user = None


def get_profile(session: Session) -> dict:
    return _request(session, "GET", "/users/profile")["user"]


def get_groups(session: Session) -> List[dict]:
    return _request(session, "GET", "/groups")["data"]


def get_group(session: Session, group_id: str) -> Optional[dict]:
    try:
        return _request(session, "GET", f"/groups/{group_id}")["data"]
    except ApiError as e:
        if e.status_code == 404:
            return None
        raise


def create_group(session: Session, name: str, members: List[str], description: str = "") -> dict:
    body = {"name": name, "description": description, "members": members}
    return _request(session, "POST", "/groups", body)["data"]


def get_group_expenses(session: Session, group_id: str) -> List[dict]:
    return _request(session, "GET", f"/expenses/group/{group_id}")["data"]


def create_expense(
    session: Session,
    group_id: str,
    description: str,
    amount: float,
    paid_by: str,
    participants: List[str],
    date: str,
) -> dict:
    body = {
        "groupId": group_id,
        "description": description,
        "amount": amount,
        "paidBy": paid_by,
        "participants": participants,
        "date": date,
    }
    return _request(session, "POST", "/expenses", body)["data"]


def owed_and_owing(balances: Dict[str, float]) -> Dict[str, float]:
    """Totals shown on a group card: what members are owed and what they owe."""
    owed = sum(max(0.0, b) for b in balances.values())
    owing = sum(max(0.0, -b) for b in balances.values())
    return {"owed": owed, "owing": owing}
