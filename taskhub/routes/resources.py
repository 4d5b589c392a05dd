import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.auth.deps import Identity, get_identity
from taskhub.db import get_db
from taskhub.errors import ValidationFailed
from taskhub.models.enums import TaskStatus
from taskhub.models.task import Task, TaskMessage
from taskhub.models.team import TaskList, Team
from taskhub.rbac.deps import (
    OrgContext,
    find_membership,
    require_list_perm,
    require_perm,
    require_task_perm,
    require_team_perm,
)
from taskhub.schemas.common import Envelope
from taskhub.schemas.resources import (
    MessageIn,
    MessageOut,
    NameIn,
    TaskCreateIn,
    TaskListOut,
    TaskOut,
    TaskUpdateIn,
    TeamOut,
)

router = APIRouter(prefix="/api", tags=["resources"])

def check_task_owner(db: Session, ctx: OrgContext, owner_id: uuid.UUID | None) -> None:
    # assignees must belong to the task's organization
    if owner_id is not None and find_membership(db, ctx.org_id, owner_id) is None:
        raise ValidationFailed("Invalid ownerId", status_code=422)

# teams (org level)

@router.post("/orgs/{org_id}/teams", response_model=Envelope[TeamOut], status_code=status.HTTP_201_CREATED)
def create_team(
    org_id: uuid.UUID,
    payload: NameIn,
    ctx: OrgContext = Depends(require_perm("teams:create")),
    db: Session = Depends(get_db),
) -> Envelope[TeamOut]:
    team = Team(organization_id=org_id, name=payload.name)
    db.add(team)
    db.commit()
    db.refresh(team)
    return Envelope(data=TeamOut.model_validate(team))

@router.get("/orgs/{org_id}/teams", response_model=Envelope[list[TeamOut]])
def list_teams(
    org_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("teams:read")),
    db: Session = Depends(get_db),
) -> Envelope[list[TeamOut]]:
    rows = db.scalars(select(Team).where(Team.organization_id == org_id).order_by(Team.created_at.desc())).all()
    return Envelope(data=[TeamOut.model_validate(t) for t in rows])

# lists (team level)

@router.post("/teams/{team_id}/lists", response_model=Envelope[TaskListOut], status_code=status.HTTP_201_CREATED)
def create_list(
    team_id: uuid.UUID,
    payload: NameIn,
    ctx: OrgContext = Depends(require_team_perm("lists:create")),
    db: Session = Depends(get_db),
) -> Envelope[TaskListOut]:
    task_list = TaskList(team_id=team_id, name=payload.name)
    db.add(task_list)
    db.commit()
    db.refresh(task_list)
    return Envelope(data=TaskListOut.model_validate(task_list))

@router.get("/teams/{team_id}/lists", response_model=Envelope[list[TaskListOut]])
def list_lists(
    team_id: uuid.UUID,
    ctx: OrgContext = Depends(require_team_perm("lists:read")),
    db: Session = Depends(get_db),
) -> Envelope[list[TaskListOut]]:
    rows = db.scalars(
        select(TaskList).where(TaskList.team_id == team_id).order_by(TaskList.created_at.desc())
    ).all()
    return Envelope(data=[TaskListOut.model_validate(r) for r in rows])

# tasks (list level)

@router.post("/lists/{list_id}/tasks", response_model=Envelope[TaskOut], status_code=status.HTTP_201_CREATED)
def create_task(
    list_id: uuid.UUID,
    payload: TaskCreateIn,
    ctx: OrgContext = Depends(require_list_perm("tasks:create")),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Envelope[TaskOut]:
    check_task_owner(db, ctx, payload.owner_id)

    t = Task(
        task_list_id=list_id,
        title=payload.title,
        description=payload.description,
        created_by=identity.user_id,
        owner_id=payload.owner_id,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return Envelope(data=TaskOut.model_validate(t))

@router.get("/lists/{list_id}/tasks", response_model=Envelope[list[TaskOut]])
def list_tasks(
    list_id: uuid.UUID,
    task_status: TaskStatus | None = Query(default=None, alias="status"),
    owner_id: uuid.UUID | None = Query(default=None, alias="ownerId"),
    ctx: OrgContext = Depends(require_list_perm("tasks:read")),
    db: Session = Depends(get_db),
) -> Envelope[list[TaskOut]]:
    q = select(Task).where(Task.task_list_id == list_id)
    if task_status is not None:
        q = q.where(Task.status == task_status)
    if owner_id is not None:
        q = q.where(Task.owner_id == owner_id)
    rows = db.scalars(q.order_by(Task.created_at.desc())).all()
    return Envelope(data=[TaskOut.model_validate(r) for r in rows])

@router.get("/tasks/{task_id}", response_model=Envelope[TaskOut])
def get_task(ctx: OrgContext = Depends(require_task_perm("tasks:read"))) -> Envelope[TaskOut]:
    return Envelope(data=TaskOut.model_validate(ctx.resource))

@router.patch("/tasks/{task_id}", response_model=Envelope[TaskOut])
def update_task(
    payload: TaskUpdateIn,
    ctx: OrgContext = Depends(require_task_perm("tasks:update")),
    db: Session = Depends(get_db),
) -> Envelope[TaskOut]:
    t: Task = ctx.resource
    reassign = "owner_id" in payload.model_fields_set
    if reassign:
        check_task_owner(db, ctx, payload.owner_id)

    if payload.title is not None:
        t.title = payload.title
    if payload.description is not None:
        t.description = payload.description
    if payload.status is not None:
        t.status = payload.status

    # allow explicit unassign by sending null
    if reassign:
        t.owner_id = payload.owner_id

    db.commit()
    db.refresh(t)
    return Envelope(data=TaskOut.model_validate(t))

# message thread (task level)

@router.post("/tasks/{task_id}/messages", response_model=Envelope[MessageOut], status_code=status.HTTP_201_CREATED)
def post_message(
    task_id: uuid.UUID,
    payload: MessageIn,
    ctx: OrgContext = Depends(require_task_perm("messages:create")),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Envelope[MessageOut]:
    if not payload.body.strip():
        raise ValidationFailed("Invalid body", status_code=422)

    msg = TaskMessage(task_id=task_id, author_id=identity.user_id, body=payload.body)
    db.add(msg)
    db.commit()
    db.refresh(msg)
    return Envelope(data=MessageOut.model_validate(msg))

@router.get("/tasks/{task_id}/messages", response_model=Envelope[list[MessageOut]])
def list_messages(
    task_id: uuid.UUID,
    ctx: OrgContext = Depends(require_task_perm("messages:read")),
    db: Session = Depends(get_db),
) -> Envelope[list[MessageOut]]:
    # chronological
    rows = db.scalars(
        select(TaskMessage).where(TaskMessage.task_id == task_id).order_by(TaskMessage.created_at.asc())
    ).all()
    return Envelope(data=[MessageOut.model_validate(m) for m in rows])
