"""
Input validation for post and comment payloads.

Both validators follow the same contract: ``validate_*(raw) -> (errors,
is_valid)`` where *errors* maps a field name to one message.  The rules are
expressed as pydantic models; pydantic's own error list is flattened into
that map so callers never see a ``ValidationError``.
"""
from pydantic import BaseModel, Field, ValidationError, field_validator

from postboard.config import settings


def _required_text(value: str | None) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Text field is required")
    return value


class PostInput(BaseModel):
    text: str | None = Field(default=None, validate_default=True)
    name: str | None = None
    avatar: str | None = None

    @field_validator("text")
    @classmethod
    def _check_text(cls, value: str | None) -> str:
        value = _required_text(value)
        low, high = settings.POST_TEXT_MIN_LENGTH, settings.POST_TEXT_MAX_LENGTH
        if not low <= len(value) <= high:
            raise ValueError(f"Post must be between {low} and {high} characters")
        return value


class CommentInput(BaseModel):
    text: str | None = Field(default=None, validate_default=True)
    name: str | None = None
    avatar: str | None = None

    @field_validator("text")
    @classmethod
    def _check_text(cls, value: str | None) -> str:
        return _required_text(value)


def _flatten(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "input"
        if err["type"] == "value_error":
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        # First message per field only.
        errors.setdefault(field, message)
    return errors


def _validate(model: type[BaseModel], raw) -> tuple[dict[str, str], bool]:
    if not isinstance(raw, dict):
        return {"input": "Input should be an object"}, False
    try:
        model.model_validate(raw)
    except ValidationError as exc:
        return _flatten(exc), False
    return {}, True


def validate_post_input(raw: dict) -> tuple[dict[str, str], bool]:
    return _validate(PostInput, raw)


def validate_comment_input(raw: dict) -> tuple[dict[str, str], bool]:
    return _validate(CommentInput, raw)
