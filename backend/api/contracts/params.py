"""
Pydantic param models for API endpoints.

Key features:
- frozen=True: Immutable after normalization (prevents downstream mutation)
- populate_by_name=True: Accept both alias and field name
- extra='ignore': Ignore undeclared fields (safe)
- Pagination preconditions (limit > 0, offset >= 0) are enforced here, so
  the swap card pipeline only ever sees validated values
"""

from typing import Annotated, Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from config import Config

M = TypeVar('M', bound=BaseModel)


class ValidationError(ValueError):
    """A request param failed the contract. Maps to 400 INVALID_PARAMS."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def coerce_int(v: Any) -> Optional[int]:
    """Query-string int: '' and None mean absent, anything unparseable fails."""
    if isinstance(v, bool):
        raise ValueError(f"Expected int, got bool: {v!r}")
    if isinstance(v, int) or v is None:
        return v
    text = str(v).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"Expected int, got {type(v).__name__}: {v!r}")


CoercedInt = Annotated[Optional[int], BeforeValidator(coerce_int)]


class BaseParamsModel(BaseModel):
    """
    Base model for all API param schemas.

    - Frozen after creation (immutable)
    - Whitespace stripped from strings
    - Both alias and field name accepted
    - Unknown fields ignored
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        extra='ignore',
    )


class SwapCardsParams(BaseParamsModel):
    """Params for GET /api/swaps/cards."""

    limit: CoercedInt = Field(
        default=Config.SWAP_CARDS_DEFAULT_LIMIT,
        description="Cards per page (1..SWAP_CARDS_MAX_LIMIT, larger values are clamped)"
    )
    offset: CoercedInt = Field(
        default=0,
        description="Cards to skip (>= 0)"
    )

    @field_validator('limit')
    @classmethod
    def limit_positive_and_clamped(cls, v):
        if v is None:
            return Config.SWAP_CARDS_DEFAULT_LIMIT
        if v <= 0:
            raise ValueError("limit must be greater than 0")
        return min(v, Config.SWAP_CARDS_MAX_LIMIT)

    @field_validator('offset')
    @classmethod
    def offset_non_negative(cls, v):
        if v is None:
            return 0
        if v < 0:
            raise ValueError("offset must be 0 or greater")
        return v


def parse_params(model: Type[M], raw: Mapping[str, Any]) -> M:
    """
    Validate raw request params into a frozen model.

    Raises:
        ValidationError: with the first offending field
    """
    try:
        return model.model_validate(dict(raw))
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first['loc'][0]) if first.get('loc') else None
        message = first.get('msg', 'Invalid parameter')
        raise ValidationError(
            f"{field}: {message}" if field else message,
            field=field,
            received_value=first.get('input'),
        ) from e


def validation_error_body(error: ValidationError) -> dict:
    """Plain 400 body for callers outside Flask (the CLI --json output)."""
    body = {
        'error': str(error),
        'type': 'validation_error',
    }
    if error.field:
        body['field'] = error.field
    if error.received_value is not None:
        body['received_value'] = str(error.received_value)
    return body
