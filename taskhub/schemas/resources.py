import uuid
from datetime import datetime

from pydantic import Field

from taskhub.models.enums import TaskStatus
from taskhub.schemas.common import CamelModel

class NameIn(CamelModel):
    name: str = Field(min_length=2, max_length=200)

class TeamOut(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str

class TaskListOut(CamelModel):
    id: uuid.UUID
    team_id: uuid.UUID
    name: str

class TaskCreateIn(CamelModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    owner_id: uuid.UUID | None = None

class TaskUpdateIn(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    status: TaskStatus | None = None
    owner_id: uuid.UUID | None = None

class TaskOut(CamelModel):
    id: uuid.UUID
    task_list_id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    created_by: uuid.UUID
    owner_id: uuid.UUID | None

class MessageIn(CamelModel):
    body: str = Field(min_length=1)

class MessageOut(CamelModel):
    id: uuid.UUID
    task_id: uuid.UUID
    author_id: uuid.UUID
    body: str
    created_at: datetime
