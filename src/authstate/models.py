from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SessionStatus(str, Enum):
    LOGGED_OUT = "logged_out"
    RESOLVING = "resolving"
    LOGGED_IN = "logged_in"


class Route(str, Enum):
    """Navigation targets emitted by the controller."""

    ROOT = "/"
    PROFILE = "/profile"
    SUCCESS = "/success"


class Session(BaseModel):
    """
    Snapshot of the process-wide session.

    Fields
    - status: where the controller is in its state machine.
    - token: the opaque bearer token; never parsed client-side.
    - user: backend-defined user record, present only when logged in.

    Notes
    - Snapshots are immutable; the controller replaces its session on every change
      and hands the new snapshot to subscribers.
    - `token is None` exactly when logged out, and `user` is set exactly when
      logged in.
    """

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.LOGGED_OUT
    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "Session":
        if (self.status is SessionStatus.LOGGED_OUT) != (self.token is None):
            raise ValueError("token must be set unless logged out")
        if (self.status is SessionStatus.LOGGED_IN) != (self.user is not None):
            raise ValueError("user must be set exactly when logged in")
        return self

    @classmethod
    def logged_out(cls) -> "Session":
        return cls()

    @classmethod
    def resolving(cls, token: str) -> "Session":
        return cls(status=SessionStatus.RESOLVING, token=token)

    @classmethod
    def logged_in(cls, token: str, user: Dict[str, Any]) -> "Session":
        return cls(status=SessionStatus.LOGGED_IN, token=token, user=user)

    @property
    def is_logged_in(self) -> bool:
        return self.status is SessionStatus.LOGGED_IN


class Ok(BaseModel):
    """Successful login/register; `target` is where the app navigated."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    target: Route


class Err(BaseModel):
    """Failed login/register carrying the message to show the user."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    message: str = Field(..., description="Backend-provided or client-side failure reason")


Result = Union[Ok, Err]


__all__ = ["Err", "Ok", "Result", "Route", "Session", "SessionStatus"]
