"""
Naksh Backend — Schema Base
=============================

What:  Shared Pydantic configuration for every request and response model.
How:   snake_case in Python, camelCase on the wire (`postId`, `userId`).
       Request bodies accept either spelling; responses are dumped by alias.
"""

from typing import Any, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

M = TypeVar("M", bound="CamelModel")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def to_wire(schema: Type[M], obj: Any) -> dict:
    """ORM object (or dict) → JSON-ready dict with camelCase keys."""
    return schema.model_validate(obj).model_dump(by_alias=True, mode="json")


def to_wire_list(schema: Type[M], objs: Iterable[Any]) -> List[dict]:
    return [to_wire(schema, obj) for obj in objs]
