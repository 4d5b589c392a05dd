import uuid
from datetime import datetime

from pydantic import EmailStr, Field

from taskhub.models.enums import Role
from taskhub.schemas.common import CamelModel

class OrgCreateIn(CamelModel):
    name: str = Field(min_length=2, max_length=120)

class OrgOut(CamelModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    created_at: datetime | None = None

class MemberAddIn(CamelModel):
    email: EmailStr
    role: Role = Role.MEMBER

class MemberRoleIn(CamelModel):
    role: Role

class MemberUserOut(CamelModel):
    id: uuid.UUID
    email: str
    username: str | None

class MembershipOut(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    user: MemberUserOut | None = None

class InviteOut(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    token: str
    expires_at: datetime

class InviteAcceptIn(CamelModel):
    token: str = Field(min_length=1)
