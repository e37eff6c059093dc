"""Unit tests for pydantic error flattening."""

import pytest
from pydantic import BaseModel, Field, ValidationError, field_validator

from microdeck.config.validator import first_error_field, flatten_pydantic_errors


class _Sample(BaseModel):
    name: str
    size: int = Field(gt=0)

    @field_validator("name")
    @classmethod
    def no_spaces(cls, v: str) -> str:
        if " " in v:
            raise ValueError("must not contain spaces")
        return v


def _errors(**data: object) -> ValidationError:
    with pytest.raises(ValidationError) as exc_info:
        _Sample.model_validate(data)
    return exc_info.value


@pytest.mark.unit
class TestFlattenPydanticErrors:
    """Tests for flatten_pydantic_errors."""

    def test_one_message_per_field(self) -> None:
        messages = flatten_pydantic_errors(_errors(size=0))

        assert len(messages) == 2
        assert messages[0].startswith("Field 'name'")
        assert "greater than 0" in messages[1]

    def test_value_error_includes_input(self) -> None:
        messages = flatten_pydantic_errors(_errors(name="a b", size=1))

        assert messages == [
            "Field 'name': Value error, must not contain spaces (received: 'a b')"
        ]


@pytest.mark.unit
class TestFirstErrorField:
    """Tests for first_error_field."""

    def test_returns_first_location(self) -> None:
        assert first_error_field(_errors(name="ok", size=-1)) == "size"
