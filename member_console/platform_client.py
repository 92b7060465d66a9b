"""
Client abstraction for the headless platform's member, contact and
authentication REST APIs, plus an in-memory fake for tests and local runs.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from member_console.errors import MEMBER_ALREADY_EXISTS, PlatformError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
RETRY_STATUSES = (429, 500, 502, 503, 504)
TOKEN_EXPIRY_MARGIN = 60  # seconds


@dataclass
class MemberSummary:
    id: str
    contact_id: Optional[str]
    login_email: Optional[str]
    nickname: Optional[str] = None


class PlatformClient(Protocol):
    """Operations the console needs from one headless site."""

    def query_members(self, email_contains: str = "") -> list[MemberSummary]:
        ...

    def bulk_delete_members(self, member_ids: list[str]) -> None:
        ...

    def delete_contact(self, contact_id: str) -> None:
        ...

    def find_contact_id(self, email: str) -> Optional[str]:
        ...

    def register(self, email: str, password: str) -> dict:
        ...


def _raise_for_platform_error(response: requests.Response) -> None:
    if response.ok:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    details = body.get("details") or {}
    application_error = details.get("applicationError") or {}
    message = (
        body.get("message")
        or application_error.get("description")
        or response.text
        or f"HTTP {response.status_code}"
    )
    raise PlatformError(
        message,
        status_code=response.status_code,
        code=application_error.get("code"),
    )


def _to_member_summary(member: dict) -> MemberSummary:
    profile = member.get("profile") or {}
    return MemberSummary(
        id=member.get("id") or member.get("_id"),
        contact_id=member.get("contactId"),
        login_email=member.get("loginEmail"),
        nickname=profile.get("nickname"),
    )


@dataclass
class HttpPlatformClient:
    """
    REST client for one headless site, authenticated as an anonymous visitor
    of the site's OAuth app (identified by its client id).
    """

    client_id: str
    base_url: str = "https://www.wixapis.com"
    timeout: float = REQUEST_TIMEOUT
    max_retries: int = 2
    session: Optional[requests.Session] = None

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        if self.session is None:
            self.session = requests.Session()
            # Only idempotent calls are retried; a retried registration could
            # report a spurious "already exists".
            retry = Retry(
                total=self.max_retries,
                backoff_factor=0.5,
                status_forcelist=RETRY_STATUSES,
                allowed_methods=frozenset({"GET", "DELETE"}),
                raise_on_status=False,
            )
            self.session.mount("https://", HTTPAdapter(max_retries=retry))
            self.session.mount("http://", HTTPAdapter(max_retries=retry))
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def _token(self) -> str:
        with self._token_lock:
            if self._access_token and time.time() < self._token_expires_at:
                return self._access_token
            logger.info("Requesting platform access token for client %s", self.client_id)
            try:
                response = self.session.post(
                    f"{self.base_url}/oauth2/token",
                    json={"clientId": self.client_id, "grantType": "anonymous"},
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise PlatformError(f"Token request failed: {exc}") from exc
            _raise_for_platform_error(response)
            try:
                payload = response.json()
                access_token = payload["access_token"]
                expires_in = float(payload.get("expires_in", 14400))
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                raise PlatformError(
                    "Token response has no access token",
                    status_code=response.status_code,
                ) from exc
            self._access_token = access_token
            self._token_expires_at = time.time() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
            return self._access_token

    def _request(self, method: str, path: str, *, json: Optional[dict] = None) -> dict:
        headers = {"Authorization": self._token()}
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PlatformError(f"{method} {path} failed: {exc}") from exc
        if response.status_code == 401:
            # Token revoked or expired early; the next call fetches a new one.
            self._access_token = None
        _raise_for_platform_error(response)
        if not response.content:
            return {}
        return response.json()

    def query_members(self, email_contains: str = "") -> list[MemberSummary]:
        query: dict = {}
        if email_contains:
            query["filter"] = {"loginEmail": {"$contains": email_contains}}
        payload = self._request(
            "POST",
            "/members/v1/members/query",
            json={"query": query, "fieldsets": ["FULL"]},
        )
        return [_to_member_summary(m) for m in payload.get("members") or []]

    def bulk_delete_members(self, member_ids: list[str]) -> None:
        self._request(
            "POST", "/members/v1/members/bulk/delete", json={"memberIds": member_ids}
        )

    def delete_contact(self, contact_id: str) -> None:
        self._request("DELETE", f"/contacts/v4/contacts/{contact_id}")

    def find_contact_id(self, email: str) -> Optional[str]:
        payload = self._request(
            "POST",
            "/contacts/v4/contacts/query",
            json={"query": {"filter": {"info.emails.email": {"$eq": email}}}},
        )
        contacts = payload.get("contacts") or []
        if not contacts:
            return None
        return contacts[0].get("id")

    def register(self, email: str, password: str) -> dict:
        payload = self._request(
            "POST",
            "/_api/iam/authentication/v2/register",
            json={"loginId": {"email": email}, "password": password, "profile": {}},
        )
        state = payload.get("state") or {}
        return {
            "status": state.get("stateType") or "SUCCESS",
            "member": payload.get("identity"),
        }


@dataclass
class InMemoryPlatformClient:
    """Test double holding members and contacts of one site in memory."""

    client_id: str
    members: Dict[str, MemberSummary] = field(default_factory=dict)
    contacts: Dict[str, str] = field(default_factory=dict)
    # email -> error message raised by register()
    failures: Dict[str, str] = field(default_factory=dict)
    registered: list[str] = field(default_factory=list)

    def add_member(self, email: str, nickname: Optional[str] = None) -> MemberSummary:
        contact_id = self.find_contact_id(email) or uuid.uuid4().hex
        self.contacts[contact_id] = email
        member = MemberSummary(
            id=uuid.uuid4().hex,
            contact_id=contact_id,
            login_email=email,
            nickname=nickname,
        )
        self.members[member.id] = member
        return member

    def query_members(self, email_contains: str = "") -> list[MemberSummary]:
        return [
            m
            for m in self.members.values()
            if email_contains in (m.login_email or "")
        ]

    def bulk_delete_members(self, member_ids: list[str]) -> None:
        for member_id in member_ids:
            self.members.pop(member_id, None)

    def delete_contact(self, contact_id: str) -> None:
        if contact_id not in self.contacts:
            raise PlatformError(
                f"Contact {contact_id} not found", status_code=404, code="CONTACT_NOT_FOUND"
            )
        del self.contacts[contact_id]

    def find_contact_id(self, email: str) -> Optional[str]:
        for contact_id, contact_email in self.contacts.items():
            if contact_email == email:
                return contact_id
        return None

    def register(self, email: str, password: str) -> dict:
        if email in self.failures:
            raise PlatformError(self.failures[email], status_code=400)
        if any(m.login_email == email for m in self.members.values()):
            raise PlatformError(
                "Member already exists", status_code=409, code=MEMBER_ALREADY_EXISTS
            )
        member = self.add_member(email)
        self.registered.append(email)
        return {
            "status": "SUCCESS",
            "member": {
                "id": member.id,
                "contactId": member.contact_id,
                "loginEmail": member.login_email,
            },
        }


class PlatformClientFactory:
    """Caches one platform client per API client id."""

    def __init__(self, builder: Callable[[str], PlatformClient]):
        self._builder = builder
        self._clients: Dict[str, PlatformClient] = {}
        self._lock = threading.Lock()

    def get(self, client_id: str) -> PlatformClient:
        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                logger.info("Creating platform client for %s", client_id)
                client = self._builder(client_id)
                self._clients[client_id] = client
            return client
