"""
Pydantic models for the uniform ``{success, data | error}`` response wrapper.
"""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from synology_client.exceptions import ProtocolError


class ErrorDetail(BaseModel):
    """The ``error`` object of a failed call."""

    model_config = ConfigDict(extra="allow")

    code: int
    # Batch operations report one entry per failed item, e.g. {"code": 408, "path": "/x"}
    errors: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def wrap_single_error(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return [v]
        return v


class SuccessEnvelope(BaseModel):
    success: Literal[True]
    data: Any

    @field_validator("data")
    @classmethod
    def validate_data_present(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("successful response carries no data")
        return v


class FailureEnvelope(BaseModel):
    success: Literal[False]
    error: ErrorDetail


# The Literal `success` fields pick the member; anything else matches neither.
ResponseEnvelope = Union[SuccessEnvelope, FailureEnvelope]

_envelope_adapter: TypeAdapter[ResponseEnvelope] = TypeAdapter(ResponseEnvelope)


def parse_envelope(payload: Any) -> SuccessEnvelope | FailureEnvelope:
    """
    Validates a decoded JSON body against the envelope union.

    Raises:
        ProtocolError: If the body is not a well-formed envelope.
    """
    if not isinstance(payload, dict):
        raise ProtocolError(
            f"Malformed response: expected a JSON object, got {type(payload).__name__}"
        )
    try:
        return _envelope_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ProtocolError(f"Malformed response envelope: {e}") from e
