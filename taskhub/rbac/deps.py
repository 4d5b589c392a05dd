"""Role gate: resolve the caller's membership for the target organization.

Membership is re-read on every request; ``roles`` embedded in the access
token are never trusted for authorization. Nested resources (team, list,
task) resolve their organization by walking parent links first.
"""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.auth.deps import Identity, get_identity
from taskhub.db import get_db
from taskhub.errors import Forbidden, NotFound
from taskhub.models.enums import Role
from taskhub.models.membership import Membership
from taskhub.models.task import Task
from taskhub.models.team import TaskList, Team
from taskhub.rbac.perms import allowed_roles

log = structlog.get_logger()

ORG_PARAM_NAMES = ("org_id", "id")

@dataclass
class OrgContext:
    org_id: uuid.UUID
    membership: Membership
    resource: Any = None

    @property
    def role(self) -> Role:
        return self.membership.role

def find_membership(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> Membership | None:
    return db.scalar(
        select(Membership).where(Membership.organization_id == org_id, Membership.user_id == user_id)
    )

def check_membership(
    db: Session,
    org_id: uuid.UUID | None,
    user_id: uuid.UUID | None,
    allowed: Iterable[Role],
) -> Membership:
    if org_id is None or user_id is None:
        raise Forbidden()

    membership = find_membership(db, org_id, user_id)
    if membership is None or membership.role not in set(allowed):
        log.info(
            "rbac.forbidden",
            org_id=str(org_id),
            user_id=str(user_id),
            role=membership.role.value if membership else None,
        )
        raise Forbidden()
    return membership

def org_id_from_path(request: Request) -> uuid.UUID | None:
    # routes use either /orgs/{org_id}/... or /orgs/{id}/...
    for name in ORG_PARAM_NAMES:
        raw = request.path_params.get(name)
        if raw:
            try:
                return uuid.UUID(str(raw))
            except ValueError:
                return None
    return None

def require_role(allowed: Iterable[Role]):
    allowed = frozenset(allowed)

    def _checker(
        request: Request,
        identity: Identity = Depends(get_identity),
        db: Session = Depends(get_db),
    ) -> OrgContext:
        org_id = org_id_from_path(request)
        membership = check_membership(db, org_id, identity.user_id, allowed)
        return OrgContext(org_id=membership.organization_id, membership=membership)

    return _checker

def require_perm(action: str):
    return require_role(allowed_roles(action))

def require_team_perm(action: str):
    allowed = allowed_roles(action)

    def _checker(
        team_id: uuid.UUID,
        identity: Identity = Depends(get_identity),
        db: Session = Depends(get_db),
    ) -> OrgContext:
        team = db.get(Team, team_id)
        if team is None:
            raise NotFound("Team not found")
        membership = check_membership(db, team.organization_id, identity.user_id, allowed)
        return OrgContext(org_id=team.organization_id, membership=membership, resource=team)

    return _checker

def require_list_perm(action: str):
    allowed = allowed_roles(action)

    def _checker(
        list_id: uuid.UUID,
        identity: Identity = Depends(get_identity),
        db: Session = Depends(get_db),
    ) -> OrgContext:
        row = db.execute(
            select(TaskList, Team.organization_id)
            .join(Team, Team.id == TaskList.team_id)
            .where(TaskList.id == list_id)
        ).first()
        if row is None:
            raise NotFound("List not found")
        task_list, org_id = row
        membership = check_membership(db, org_id, identity.user_id, allowed)
        return OrgContext(org_id=org_id, membership=membership, resource=task_list)

    return _checker

def require_task_perm(action: str):
    allowed = allowed_roles(action)

    def _checker(
        task_id: uuid.UUID,
        identity: Identity = Depends(get_identity),
        db: Session = Depends(get_db),
    ) -> OrgContext:
        row = db.execute(
            select(Task, Team.organization_id)
            .join(TaskList, TaskList.id == Task.task_list_id)
            .join(Team, Team.id == TaskList.team_id)
            .where(Task.id == task_id)
        ).first()
        if row is None:
            raise NotFound("Task not found")
        task, org_id = row
        membership = check_membership(db, org_id, identity.user_id, allowed)
        return OrgContext(org_id=org_id, membership=membership, resource=task)

    return _checker
