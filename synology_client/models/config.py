"""
Pydantic model for client configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = "synology-client"


class ClientConfig(BaseModel):
    """A validated configuration model for the transport client."""

    # Connection
    base_url: str
    verify_ssl: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    max_connections: int = 10

    # Timeouts (seconds)
    timeout_total: float = 60.0
    timeout_connect: float = 15.0
    timeout_sock_read: float = 30.0

    # Session token stored by `init`
    sid: str = ""

    # Upload defaults
    create_parents: bool = True

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the base URL is an absolute http(s) URL ending in a slash."""
        if not v:
            raise ValueError("Base URL cannot be empty.")
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Base URL must start with http:// or https://, but got: {v}"
            )
        return v.rstrip("/") + "/"

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable connection pool size."""
        if v < 1 or v > 100:
            raise ValueError("Max connections must be between 1 and 100.")
        return v

    @field_validator("timeout_total", "timeout_connect", "timeout_sock_read")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
