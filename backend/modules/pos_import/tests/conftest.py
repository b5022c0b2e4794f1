from typing import Any, Callable, Dict, List, Union

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from modules.pos_import.models import pos_import_models  # noqa: F401
from modules.pos_import.routes.pos_import_routes import get_pos_api_client
from modules.pos_import.services.pos_api_client import PosApiClient
from modules.pos_import.services.token_manager import MemoryTokenStore, TokenManager

POS_BASE_URL = "https://pos.test/v1"
TEST_API_KEY = "test-api-key"

engine = create_engine(
    "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Route = Union[Dict[str, Any], httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakePosApi:
    """
    MockTransport handler standing in for the POS cloud.

    Resource paths map to a JSON body, a ready httpx.Response or a callable
    taking the request. Unknown paths answer 404.
    """

    def __init__(self, token_expires_in: int = 3600):
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []
        self.token_expires_in = token_expires_in
        self.auth_response: Union[httpx.Response, None] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/v1"):]

        if path == "/auth/token":
            if self.auth_response is not None:
                return self.auth_response
            return httpx.Response(
                200,
                json={
                    "access_token": f"token-{len(self.calls('/auth/token'))}",
                    "expires_in": self.token_expires_in,
                    "token_type": "Bearer",
                },
            )

        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, text=f"no route for {path}")
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/v1{path}"]


@pytest.fixture(scope="function")
def db_session():
    """Fresh in-memory database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_pos_api():
    return FakePosApi()


@pytest.fixture
def http_client(fake_pos_api):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_pos_api))


@pytest.fixture
def token_manager(http_client):
    return TokenManager(
        store=MemoryTokenStore(),
        http_client=http_client,
        base_url=POS_BASE_URL,
        api_key=TEST_API_KEY,
    )


@pytest.fixture
def pos_client(http_client, token_manager):
    return PosApiClient(
        token_manager=token_manager, http_client=http_client, base_url=POS_BASE_URL
    )


@pytest.fixture(scope="function")
def client(db_session, pos_client):
    """Test client with the database and POS client dependencies overridden."""
    from app.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    async def override_get_pos_api_client():
        yield pos_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pos_api_client] = override_get_pos_api_client
    yield TestClient(app)
    app.dependency_overrides.clear()
