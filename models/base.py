from pydantic import BaseModel, ConfigDict, ValidationError
from typing import Any, Optional


def first_error(error: ValidationError) -> str:
    """The first validation message, short enough for a client-facing error."""
    return error.errors()[0]["msg"]


class BaseGolfModel(BaseModel):
    """Domain model base: assignments are validated like construction."""
    model_config = ConfigDict(validate_assignment=True)

    def update_field(self, field_name: str, value: Any) -> Optional[str]:
        """Set one field, returning the validation message instead of raising."""
        try:
            setattr(self, field_name, value)
        except ValidationError as e:
            return first_error(e)
        return None
