"""Shared pydantic base models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose JSON field names are camelCase.

    Python code keeps snake_case attribute names; both spellings are accepted
    on input and responses are serialized with the camelCase aliases.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    """Generic message response."""

    message: str


# Bounds of a CQL INT column
CQL_INT_MIN = -(2**31)
CQL_INT_MAX = 2**31 - 1
