from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    # JSON is camelCase on the wire, snake_case in Python
    model_config = ConfigDict(
        from_attributes=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class StatusOut(APIModel):
    message: str
    success: bool = True
