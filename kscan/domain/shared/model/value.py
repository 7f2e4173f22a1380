from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable domain value."""

    model_config = ConfigDict(frozen=True)
