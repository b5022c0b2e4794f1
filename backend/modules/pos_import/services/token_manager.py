# backend/modules/pos_import/services/token_manager.py

"""
Acquisition and caching of the POS API bearer token.

Tokens are cached per API key (by SHA-256 hash, never the raw key) in an
explicit TokenStore. Lookup, refresh and write happen under the store's lock,
so concurrent syncs sharing a key trigger a single token request.
"""

import asyncio
import hashlib
import logging
import time
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from core.config import settings
from ..exceptions.pos_import_exceptions import AuthError, ConfigurationError
from ..models.pos_import_models import PosAccessToken
from ..schemas.pos_api_schemas import AccessTokenResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredToken:
    token: str
    expires_at: float  # epoch seconds


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class TokenStore(ABC):
    """Cache of POS tokens keyed by API key hash"""

    def __init__(self):
        self._locks = weakref.WeakKeyDictionary()

    @property
    def lock(self) -> asyncio.Lock:
        """Lock for the running event loop, created on first use"""
        loop = asyncio.get_running_loop()
        lock = self._locks.get(loop)
        if lock is None:
            lock = self._locks[loop] = asyncio.Lock()
        return lock

    @abstractmethod
    async def get(self, key_hash: str) -> Optional[StoredToken]:
        pass

    @abstractmethod
    async def set(self, key_hash: str, token: StoredToken) -> None:
        pass

    @abstractmethod
    async def delete(self, key_hash: str) -> None:
        pass


class MemoryTokenStore(TokenStore):
    def __init__(self):
        super().__init__()
        self.entries: Dict[str, StoredToken] = {}

    async def get(self, key_hash: str) -> Optional[StoredToken]:
        return self.entries.get(key_hash)

    async def set(self, key_hash: str, token: StoredToken) -> None:
        self.entries[key_hash] = token

    async def delete(self, key_hash: str) -> None:
        self.entries.pop(key_hash, None)


class SqlTokenStore(TokenStore):
    """Token store persisted in the pos_access_tokens table"""

    def __init__(self, db: Session):
        super().__init__()
        self.db = db

    async def get(self, key_hash: str) -> Optional[StoredToken]:
        row = self.db.get(PosAccessToken, key_hash)
        if row is None:
            return None
        return StoredToken(token=row.token, expires_at=row.expires_at)

    async def set(self, key_hash: str, token: StoredToken) -> None:
        self.db.merge(
            PosAccessToken(
                key_hash=key_hash, token=token.token, expires_at=token.expires_at
            )
        )
        self.db.commit()

    async def delete(self, key_hash: str) -> None:
        row = self.db.get(PosAccessToken, key_hash)
        if row is not None:
            self.db.delete(row)
            self.db.commit()


# Process-wide cache shared by every TokenManager that is not given its own store
default_token_store = MemoryTokenStore()


class TokenManager:
    def __init__(
        self,
        store: Optional[TokenStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        expiry_margin_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store or default_token_store
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.POS_HTTP_TIMEOUT_SECONDS
        )
        self.base_url = (base_url or settings.POS_API_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.POS_API_KEY
        self.expiry_margin_seconds = (
            expiry_margin_seconds
            if expiry_margin_seconds is not None
            else settings.POS_TOKEN_EXPIRY_MARGIN_SECONDS
        )
        self.clock = clock

    def resolve_api_key(self, api_key_override: Optional[str] = None) -> str:
        api_key = (api_key_override or "").strip() or (self.api_key or "").strip()
        if not api_key:
            raise ConfigurationError(
                "No POS API key supplied and POS_API_KEY is not configured"
            )
        return api_key

    async def get_valid_access_token(self, api_key_override: Optional[str] = None) -> str:
        """
        Return a bearer token for the given (or configured) API key.

        A cached token is reused while it is outside the expiry margin;
        otherwise exactly one token request is made and its result cached.
        """
        api_key = self.resolve_api_key(api_key_override)
        key_hash = hash_api_key(api_key)

        async with self.store.lock:
            cached = await self.store.get(key_hash)
            if cached is not None and self._is_fresh(cached):
                return cached.token

            if cached is None:
                logger.info("No cached POS token, requesting a new one")
            else:
                logger.info("Cached POS token expired, requesting a new one")

            fresh = await self._request_token(api_key)
            await self.store.set(key_hash, fresh)
            return fresh.token

    async def invalidate(self, api_key_override: Optional[str] = None) -> None:
        key_hash = hash_api_key(self.resolve_api_key(api_key_override))
        async with self.store.lock:
            await self.store.delete(key_hash)

    def _is_fresh(self, token: StoredToken) -> bool:
        return token.expires_at - self.expiry_margin_seconds > self.clock()

    async def _request_token(self, api_key: str) -> StoredToken:
        requested_at = self.clock()
        response = await self.http_client.post(
            f"{self.base_url}/auth/token",
            json={"grant_type": "client_credentials", "apiKey": api_key},
            headers={"Content-Type": "application/json"},
        )

        if not response.is_success:
            logger.error(f"POS token request rejected with status {response.status_code}")
            raise AuthError(response.status_code, response.text)

        try:
            payload = AccessTokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError):
            raise AuthError(response.status_code, response.text)

        return StoredToken(
            token=payload.access_token,
            expires_at=requested_at + payload.expires_in,
        )
