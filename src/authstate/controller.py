from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from authclient.backend import BackendClient, BackendError
from authclient.settings import Settings

from .models import Err, Ok, Result, Route, Session, SessionStatus
from .token_store import FileTokenStore, TokenStore, TokenStoreError


logger = logging.getLogger(__name__)

Listener = Callable[[Session], None]
Navigator = Callable[[Route], None]


class AuthResolutionError(RuntimeError):
    """A token was present but could not be turned into a user record."""


def _log_navigation(route: Route) -> None:
    logger.info("Navigate to %s", route.value)


class AuthController:
    """
    Owner of the process-wide session: who is logged in, and with which token.

    Collaborators are injected: the backend client, the durable token store and
    a `navigate(route)` callable standing in for the app router.

    State machine
    - LOGGED_OUT --login--> RESOLVING --ok--> LOGGED_IN
    - LOGGED_OUT --startup token found--> RESOLVING --ok--> LOGGED_IN
    - RESOLVING --failure--> LOGGED_OUT
    - LOGGED_IN --logout--> LOGGED_OUT

    Every change goes through `_set_session` / `_clear_session`, which write
    the durable slot and the in-memory session together. `login`, `register`
    and `logout` never raise for backend or storage failures; `login` and
    `register` return an `Err` carrying the message instead.
    """

    def __init__(
        self,
        backend: BackendClient,
        store: TokenStore,
        *,
        navigate: Optional[Navigator] = None,
    ) -> None:
        self._backend = backend
        self._store = store
        self._navigate = navigate or _log_navigation
        self._session = Session.logged_out()
        self._listeners: List[Listener] = []
        self._initialized = False
        self._owns_backend = False

    # -------- Construction helpers --------
    @classmethod
    def from_settings(cls, settings: Settings, *, navigate: Optional[Navigator] = None) -> "AuthController":
        backend = BackendClient(settings.backend_url, timeout=settings.http_timeout)
        ctl = cls(backend, FileTokenStore.from_settings(settings), navigate=navigate)
        ctl._owns_backend = True
        return ctl

    def close(self) -> None:
        if self._owns_backend:
            self._backend.close()

    def __enter__(self) -> "AuthController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------- Read access --------
    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._session.user

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def is_logged_in(self) -> bool:
        return self._session.is_logged_in

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` for session changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------- Operations --------
    def initialize(self) -> Session:
        """
        Rehydrate the session from durable storage. Runs once per controller.

        A stored token is resolved against the backend. If that fails the error
        is logged and the session stays logged out; nothing is raised.
        """
        if self._initialized:
            return self._session
        self._initialized = True

        try:
            token = self._store.get()
        except TokenStoreError:
            logger.warning("Token storage unreadable on startup; starting logged out", exc_info=True)
            self._clear_session()
            return self._session

        if not token:
            self._replace(Session.logged_out())
            return self._session

        self._replace(Session.resolving(token))
        try:
            self.resolve(token)
        except AuthResolutionError:
            logger.warning("Error fetching user data on startup", exc_info=True)
        return self._session

    def resolve(self, token: str) -> Dict[str, Any]:
        """
        Turn `token` into the current user record via the backend.

        On success the session becomes logged in with this token (durable slot
        included). On failure the session is cleared first, then
        AuthResolutionError is raised.
        """
        if not token:
            self._clear_session()
            raise AuthResolutionError("Failed to fetch user data.")
        try:
            user = self._backend.fetch_current_user(token)
        except BackendError as exc:
            logger.debug("Token resolution failed: %s", exc)
            self._clear_session()
            raise AuthResolutionError("Failed to fetch user data.") from exc
        try:
            self._set_session(token, user)
        except TokenStoreError as exc:
            self._clear_session()
            raise AuthResolutionError("Failed to persist session.") from exc
        return user

    fetch_user_data = resolve

    def login(self, username: str, password: str) -> Result:
        """
        Log in with `username`/`password`.

        The issued token is persisted before it is resolved, and navigation to
        /profile happens only after both succeed. Any failure is returned as
        `Err(message)`.
        """
        try:
            token = self._backend.login(username, password)
            self._store.set(token)
            self._replace(Session.resolving(token))
            self.resolve(token)
        except (BackendError, AuthResolutionError, TokenStoreError) as exc:
            logger.info("Login failed for %r: %s", username, exc)
            return Err(message=str(exc))
        return self._navigate_to(Route.PROFILE)

    def logout(self) -> None:
        """Drop the session locally and navigate to /. Never contacts the backend."""
        self._clear_session()
        self._navigate_to(Route.ROOT)

    def register(self, user_data: Mapping[str, Any]) -> Result:
        """
        Create an account. Leaves the session untouched (no auto-login).

        Navigates to /success on success; returns `Err(message)` otherwise.
        """
        try:
            self._backend.register(user_data)
        except BackendError as exc:
            logger.info("Registration failed: %s", exc)
            return Err(message=str(exc))
        return self._navigate_to(Route.SUCCESS)

    def _navigate_to(self, route: Route) -> Result:
        try:
            self._navigate(route)
        except Exception as exc:
            logger.warning("Navigation to %s failed: %s", route.value, exc)
            return Err(message=str(exc))
        return Ok(target=route)

    # -------- Mutators --------
    def _set_session(self, token: str, user: Dict[str, Any]) -> None:
        if self._store.get() != token:
            self._store.set(token)
        self._replace(Session.logged_in(token, user))

    def _clear_session(self) -> None:
        try:
            self._store.remove()
        except TokenStoreError:
            logger.error("Failed to clear stored token", exc_info=True)
        self._replace(Session.logged_out())

    def _replace(self, session: Session) -> None:
        if session == self._session:
            return
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")


__all__ = ["AuthController", "AuthResolutionError"]
