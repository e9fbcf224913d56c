"""
Session store: the authenticated identity and its credential.

Lifecycle:
    restore_session()  at startup, from durable storage
    login() / register() / set_auth_session()
    logout()           unconditional; also triggered when the server
                       rejects the credential (401 on an authenticated call)

Controllers receive the store by injection and read identity/role from it;
nothing else holds the credential.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .api import ApiClient
from .errors import AuthorizationError, TaskboardError, ValidationError
from .events import Notifier
from .forms import RegistrationForm
from .schema import Session
from .storage import TOKEN_KEY, USER_KEY, MemoryStorage

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    success: bool
    message: str = ""


def _credentials_from(body: Any) -> tuple:
    """Pull (token, user) out of an auth response, enveloped or not."""
    if not isinstance(body, dict):
        return None, None
    token = body.get("token")
    user = body.get("user")
    data = body.get("data")
    if isinstance(data, dict):
        token = token or data.get("token")
        user = user or data.get("user")
    return token, user if isinstance(user, dict) else None


class SessionStore:
    """Holds the current Session and keeps client, storage and notifier in sync."""

    def __init__(self, client: ApiClient, storage=None, notifier: Optional[Notifier] = None):
        self.client = client
        self.storage = storage if storage is not None else MemoryStorage()
        self.notifier = notifier or Notifier()
        self._session: Optional[Session] = None
        client.on_unauthorized = self.handle_unauthorized

    # ──────────────────────────────────────────
    # State
    # ──────────────────────────────────────────

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_admin(self) -> bool:
        return self._session is not None and self._session.is_admin

    def require_admin(self) -> Session:
        """Return the session, or raise AuthorizationError for non-admins."""
        if not self.is_admin:
            raise AuthorizationError("Access denied: administrator role required", status_code=403)
        return self._session

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def restore_session(self) -> bool:
        """Rehydrate from durable storage. Returns True when a session was restored."""
        token = self.storage.get(TOKEN_KEY)
        raw_user = self.storage.get(USER_KEY)
        if not token or not raw_user:
            return False

        try:
            identity = json.loads(raw_user) if isinstance(raw_user, str) else raw_user
            session = Session.from_identity(identity, token)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding corrupt stored session: {e}")
            self._clear()
            return False

        self._start(session, persist=False)
        logger.info(f"Restored session for {session.username}")
        return True

    def set_auth_session(self, token: Optional[str], user: Optional[Dict[str, Any]]) -> bool:
        """Adopt a credential issued outside login() (e.g. registration)."""
        if not token or not user:
            return False
        self._start(Session.from_identity(user, token))
        return True

    def login(self, username: str, password: str) -> AuthResult:
        """
        Authenticate and store identity + credential.

        On failure the current state is left untouched and the
        user-facing message is returned.
        """
        try:
            body = self.client.login(username, password)
        except TaskboardError as e:
            message = getattr(e, "message", "") or "Login failed"
            self.notifier.error(message)
            return AuthResult(False, message)

        token, user = _credentials_from(body)
        if not token or not user:
            message = body.get("message") if isinstance(body, dict) else None
            message = message or "Login failed"
            self.notifier.error(message)
            return AuthResult(False, message)

        session = Session.from_identity(user, token)
        self._start(session)
        self.notifier.success(f"Welcome back, {session.username}!")
        return AuthResult(True)

    def register(self, form: RegistrationForm) -> AuthResult:
        """Self-service registration; starts a session when the server issues one."""
        try:
            form.validate()
        except ValidationError as e:
            return AuthResult(False, str(e))

        try:
            body = self.client.register(
                form.username.strip(), form.email.strip(), form.password
            )
        except TaskboardError as e:
            message = getattr(e, "message", "") or "Registration failed. Please try again."
            return AuthResult(False, message)

        token, user = _credentials_from(body)
        if self.set_auth_session(token, user):
            self.notifier.success(f"Welcome, {self._session.username}!")
            return AuthResult(True)

        # No token in the response: fall back to a normal login
        result = self.login(form.username, form.password)
        if result.success:
            return result
        return AuthResult(False, "Registration successful! Please login.")

    def logout(self) -> None:
        """Clear identity and credential unconditionally."""
        self._clear()
        self.notifier.info("You have been logged out")

    def handle_unauthorized(self) -> None:
        """The server rejected our credential: drop the local session."""
        if self._session is None and not self.client.has_credential:
            return
        logger.warning("Credential rejected by server, clearing session")
        self._clear()
        self.notifier.error("Your session has expired. Please log in again.")

    # ──────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────

    def _start(self, session: Session, persist: bool = True) -> None:
        if persist:
            self.storage.set(TOKEN_KEY, session.credential)
            self.storage.set(USER_KEY, json.dumps(session.identity()))
        self.client.set_credential(session.credential)
        self._session = session

    def _clear(self) -> None:
        self.storage.remove(TOKEN_KEY)
        self.storage.remove(USER_KEY)
        self.client.clear_credential()
        self._session = None
