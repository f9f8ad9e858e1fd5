"""
Holds the session token issued by a prior SYNO.API.Auth login.
"""

from pydantic import BaseModel, ConfigDict, field_validator


class SessionHandle(BaseModel):
    """
    Read-only wrapper around a session ID (``sid``).

    A handle without a token represents an anonymous caller; requests made with it
    are sent without the ``_sid`` parameter.
    """

    model_config = ConfigDict(frozen=True)

    token: str | None = None

    @field_validator("token")
    @classmethod
    def normalize_token(cls, v: str | None) -> str | None:
        """Treats blank tokens as no session at all."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @classmethod
    def anonymous(cls) -> "SessionHandle":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def __repr__(self) -> str:
        if self.token is None:
            return "SessionHandle(anonymous)"
        return f"SessionHandle(token={self.token[:4]}...)"

    __str__ = __repr__
