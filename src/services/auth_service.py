"""Client for the backend platform's auth API (OAuth PKCE flow, sessions, users)."""
import base64
import hashlib
import logging
import secrets
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from core.config import Settings
from core.session_storage import CODE_VERIFIER_SUFFIX, CookieSessionStorage
from schemas.auth import Session, User
from services.exceptions import AuthApiError, error_from_response


logger = logging.getLogger(__name__)

AUTH_PATH = "/auth/v1"

# Refresh the access token when it is this close to expiring
EXPIRY_MARGIN_SECONDS = 10

# Statuses that mean "this session is no longer valid" rather than "platform error"
SESSION_INVALID_STATUSES = frozenset({401, 403})
SIGN_OUT_IGNORED_STATUSES = frozenset({401, 403, 404})


def generate_code_verifier() -> str:
    """Generate a PKCE code verifier (86 URL-safe characters)."""
    return secrets.token_urlsafe(64)


def code_challenge(verifier: str) -> str:
    """S256 code challenge for a verifier: unpadded base64url of its SHA-256."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class AuthService:
    """
    Auth API client bound to one request's session storage.

    The session lives in cookies; every method reads it from (and writes it
    back to) the storage this instance was created with.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        storage: CookieSessionStorage,
    ) -> None:
        self._http = http_client
        self._settings = settings
        self._storage = storage
        self._storage_key = settings.storage_key
        self._verifier_key = f"{settings.storage_key}{CODE_VERIFIER_SUFFIX}"

    def _url(self, path: str) -> str:
        return f"{self._settings.supabase_url}{AUTH_PATH}{path}"

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        """Common headers: the public API key plus a bearer token."""
        return {
            "apikey": self._settings.supabase_anon_key,
            "Authorization": f"Bearer {access_token or self._settings.supabase_anon_key}",
        }

    def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        """
        Start an OAuth sign-in.

        Stores a fresh PKCE code verifier and returns the provider authorize URL
        the browser should be redirected to.
        """
        verifier = generate_code_verifier()
        self._storage.set_item(self._verifier_key, verifier)
        params = {
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge(verifier),
            "code_challenge_method": "s256",
        }
        return f"{self._url('/authorize')}?{urlencode(params)}"

    async def exchange_code_for_session(self, auth_code: str) -> Session:
        """
        Exchange a one-time authorization code for a session and persist it.

        Raises:
            AuthApiError: If no code verifier is stored or the platform rejects the code.
        """
        verifier = self._storage.get_item(self._verifier_key)
        if not verifier:
            raise AuthApiError("PKCE code verifier not found in storage", code="pkce_missing")

        response = await self._http.post(
            self._url("/token"),
            params={"grant_type": "pkce"},
            json={"auth_code": auth_code, "code_verifier": verifier},
            headers=self._headers(),
        )
        if response.is_error:
            raise error_from_response(response, AuthApiError)

        session = self._parse_session(response)
        self._save_session(session)
        self._storage.remove_item(self._verifier_key)
        return session

    async def refresh_session(self, refresh_token: str) -> Session:
        """Trade a refresh token for a new session and persist it."""
        response = await self._http.post(
            self._url("/token"),
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            headers=self._headers(),
        )
        if response.is_error:
            raise error_from_response(response, AuthApiError)

        session = self._parse_session(response)
        self._save_session(session)
        return session

    async def get_session(self) -> Session | None:
        """
        Return the stored session, refreshing it if it is about to expire.

        A session whose refresh is rejected by the platform is removed.
        """
        session = self._load_session()
        if session is None:
            return None
        if not session.expires_within(EXPIRY_MARGIN_SECONDS):
            return session

        try:
            return await self.refresh_session(session.refresh_token)
        except AuthApiError as e:
            if e.status_code is not None and e.status_code < 500:
                logger.info("Session refresh rejected (%s); clearing session", e.message)
                self._storage.remove_item(self._storage_key)
                return None
            raise

    async def get_user(self) -> User | None:
        """
        Look up the user for the current session.

        Returns None when there is no session or the platform says it is invalid.

        Raises:
            AuthApiError: For any other platform failure.
        """
        session = await self.get_session()
        if session is None:
            return None

        response = await self._http.get(
            self._url("/user"),
            headers=self._headers(session.access_token),
        )
        if response.status_code in SESSION_INVALID_STATUSES:
            return None
        if response.is_error:
            raise error_from_response(response, AuthApiError)
        return User.model_validate(response.json())

    async def get_access_token(self) -> str:
        """Bearer token for data requests: the session's token, or the public key."""
        session = await self.get_session()
        if session is None:
            return self._settings.supabase_anon_key
        return session.access_token

    async def sign_out(self) -> None:
        """
        Revoke the session on the platform and remove it locally.

        The local session is always removed, even if revocation fails.
        """
        session = self._load_session()
        if session is None:
            return
        try:
            response = await self._http.post(
                self._url("/logout"),
                headers=self._headers(session.access_token),
            )
            if response.is_error and response.status_code not in SIGN_OUT_IGNORED_STATUSES:
                raise error_from_response(response, AuthApiError)
        finally:
            self._storage.remove_item(self._storage_key)

    def _parse_session(self, response: httpx.Response) -> Session:
        try:
            return Session.model_validate(response.json()).with_expiry()
        except ValueError as e:
            raise AuthApiError(
                "Malformed session in auth response",
                status_code=response.status_code,
            ) from e

    def _load_session(self) -> Session | None:
        raw = self._storage.get_item(self._storage_key)
        if raw is None:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValidationError:
            logger.warning("Stored session is malformed; ignoring it")
            return None

    def _save_session(self, session: Session) -> None:
        self._storage.set_item(self._storage_key, session.model_dump_json(exclude_none=True))
