import uuid
from datetime import datetime

from pydantic import Field

from taskhub.schemas.common import CamelModel

class UserOut(CamelModel):
    id: uuid.UUID
    email: str
    username: str | None
    created_at: datetime | None = None

class UserUpdateIn(CamelModel):
    username: str | None = Field(default=None, min_length=2, max_length=200)
