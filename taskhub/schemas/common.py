from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class Envelope(CamelModel, Generic[T]):
    status: Literal["ok"] = "ok"
    data: T | None = None
    message: str | None = None

class OkOut(CamelModel):
    status: Literal["ok"] = "ok"
    message: str | None = None
