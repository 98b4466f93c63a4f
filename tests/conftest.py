import base64
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt

from campfinder.api.endpoints import create_app
from campfinder.config import Settings

BASE_ID = "appTEST"
SUPABASE_URL = "https://proj.supabase.co"
JWT_SECRET = "test-signing-secret-that-is-long-enough"
JWT_KID = "test-key"


def camp_record(record_id: str, **fields: Any) -> Dict[str, Any]:
    return {"id": record_id, "createdTime": "2025-01-01T00:00:00.000Z", "fields": fields}


SAMPLE_CAMPS = [
    camp_record(
        "recSoccer",
        **{
            "Camp Name": "Kickoff Soccer Camp",
            "Primary Category": "Sports",
            "Age Min": 6,
            "Age Max": 12,
            "Cost Per Week": 250,
            "City": "Springfield",
            "Has After Care": True,
            "Short Description": "Drills and scrimmages every day",
            "Activities": ["Soccer", "Swimming"],
            "Featured": True,
            "Registration Status": "Coming Soon",
            "Registration Opens Date": "2026-02-02",
            "Registration Opens Time": "7am",
        },
    ),
    camp_record(
        "recRobots",
        **{
            "Camp Name": "Robot Builders",
            "Primary Category": "STEM",
            "Age Min": 9,
            "Age Max": 14,
            "Cost Per Week": 400,
            "Cost Display": "$400/week",
            "City": "Shelbyville",
            "Description": "Design, build and program robots.",
            "Activities": ["Coding", "Robotics"],
        },
    ),
    camp_record(
        "recArt",
        **{
            "Camp Name": "Little Painters",
            "Primary Category": "Arts & Crafts",
            "Age Min": 4,
            "Age Max": 7,
            "City": "Springfield",
            "Description": "Painting & <b>sculpture</b> for young artists.",
            "Registration Status": "Not Updated",
            "Registration Opens Date": "2020-01-01",
        },
    ),
]


class FakeUpstream:
    """
    Stands in for Airtable and the Supabase JWKS endpoint behind an
    httpx.MockTransport. Camps are served in pages of ``page_size``.
    """

    def __init__(
        self,
        camps: Optional[List[Dict[str, Any]]] = None,
        categories: Optional[List[Dict[str, Any]]] = None,
        page_size: int = 2,
    ) -> None:
        self.camps = SAMPLE_CAMPS if camps is None else camps
        self.categories = categories or []
        self.page_size = page_size
        self.requests: List[httpx.Request] = []
        self.fail_status: Optional[int] = None
        self.created: List[Dict[str, Any]] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def table_requests(self, table: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/v0/{BASE_ID}/{table}"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == "proj.supabase.co":
            return httpx.Response(200, json=jwks())

        if self.fail_status is not None:
            return httpx.Response(self.fail_status, text="upstream broke")

        path = request.url.path
        if request.method == "POST" and path == f"/v0/{BASE_ID}/Feedback":
            body = json.loads(request.content)
            record = {"id": f"recFeedback{len(self.created) + 1}", "fields": body["fields"]}
            self.created.append(record)
            return httpx.Response(200, json=record)

        if path == f"/v0/{BASE_ID}/Camps":
            return self._page(self.camps, request.url.params.get("offset"))
        if path == f"/v0/{BASE_ID}/Categories":
            return self._page(self.categories, request.url.params.get("offset"))
        return httpx.Response(404, json={"error": "NOT_FOUND"})

    def _page(self, records: List[Dict[str, Any]], offset: Optional[str]) -> httpx.Response:
        start = int(offset) if offset else 0
        end = start + self.page_size
        body: Dict[str, Any] = {"records": records[start:end]}
        if end < len(records):
            body["offset"] = str(end)
        return httpx.Response(200, json=body)


def jwks() -> Dict[str, Any]:
    k = base64.urlsafe_b64encode(JWT_SECRET.encode()).rstrip(b"=").decode()
    return {"keys": [{"kty": "oct", "kid": JWT_KID, "alg": "HS256", "k": k}]}


def make_token(sub: str = "user-1", email: str = "parent@example.com", **claims: Any) -> str:
    payload = {"sub": sub, "email": email, "role": "authenticated", "aud": "authenticated"}
    payload.update(claims)
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256", headers={"kid": JWT_KID})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        airtable_api_key="keyTEST",
        airtable_base_id=BASE_ID,
        supabase_url=SUPABASE_URL,
        jwt_algorithms=["HS256"],
        db_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        site_url="http://testserver",
        cache_refresh_hours=0,
    )


@pytest.fixture
def client(settings, upstream):
    """Test client with lifespan (tables created, clients closed on exit)."""
    app = create_app(settings, transport=upstream.transport)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}
