import secrets
import uuid
from datetime import timedelta

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskhub.auth.deps import Identity, get_identity
from taskhub.auth.tokens import now_utc
from taskhub.config import settings
from taskhub.db import get_db
from taskhub.errors import Conflict, Forbidden, NotFound
from taskhub.models.enums import Role
from taskhub.models.invite import Invite
from taskhub.models.membership import Membership
from taskhub.models.org import Organization
from taskhub.models.user import User
from taskhub.rbac.deps import OrgContext, require_perm
from taskhub.rbac.perms import can_assign
from taskhub.schemas.common import Envelope
from taskhub.schemas.orgs import (
    InviteOut,
    MemberAddIn,
    MemberRoleIn,
    MembershipOut,
    MemberUserOut,
    OrgCreateIn,
    OrgOut,
)

log = structlog.get_logger()

router = APIRouter(prefix="/api/orgs", tags=["orgs"])

def membership_out(m: Membership, user: User | None = None) -> MembershipOut:
    out = MembershipOut.model_validate(m)
    if user is not None:
        out.user = MemberUserOut.model_validate(user)
    return out

@router.post("", response_model=Envelope[OrgOut])
def create_org(
    payload: OrgCreateIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Envelope[OrgOut]:
    org = Organization(name=payload.name, owner_id=identity.user_id)
    db.add(org)
    db.flush()

    # creator is the one OWNER
    db.add(Membership(organization_id=org.id, user_id=identity.user_id, role=Role.OWNER))
    db.commit()
    db.refresh(org)

    log.info("orgs.created", org_id=str(org.id), user_id=identity.id)
    return Envelope(data=OrgOut.model_validate(org))

@router.get("", response_model=Envelope[list[OrgOut]])
def list_orgs(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Envelope[list[OrgOut]]:
    q = (
        select(Organization)
        .join(Membership, Membership.organization_id == Organization.id)
        .where(Membership.user_id == identity.user_id)
        .order_by(Organization.created_at.desc())
    )
    orgs = db.scalars(q).all()
    return Envelope(data=[OrgOut.model_validate(o) for o in orgs])

@router.get("/{id}", response_model=Envelope[OrgOut])
def get_org(
    id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("org:view")),
    db: Session = Depends(get_db),
) -> Envelope[OrgOut]:
    org = db.get(Organization, id)
    if org is None:
        raise NotFound("Organization not found")
    return Envelope(data=OrgOut.model_validate(org))

@router.get("/{id}/members", response_model=Envelope[list[MembershipOut]])
def list_members(
    id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("members:view")),
    db: Session = Depends(get_db),
) -> Envelope[list[MembershipOut]]:
    rows = db.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.organization_id == id)
        .order_by(Membership.created_at.asc())
    ).all()
    return Envelope(data=[membership_out(m, u) for m, u in rows])

@router.post("/{id}/members", response_model=Envelope[MembershipOut], status_code=status.HTTP_201_CREATED)
def add_member(
    id: uuid.UUID,
    payload: MemberAddIn,
    ctx: OrgContext = Depends(require_perm("members:add")),
    db: Session = Depends(get_db),
) -> Envelope[MembershipOut]:
    if not can_assign(ctx.role, payload.role):
        raise Forbidden(f"Cannot assign {payload.role.value} role")

    user = db.scalar(select(User).where(User.email == payload.email.lower().strip()))
    if user is None:
        raise NotFound("User not found")

    m = Membership(organization_id=id, user_id=user.id, role=payload.role)
    db.add(m)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("User already a member") from exc
    db.refresh(m)

    log.info("orgs.member_added", org_id=str(id), user_id=str(user.id), role=m.role.value)
    return Envelope(data=membership_out(m, user))

@router.patch("/{org_id}/members/{member_id}", response_model=Envelope[MembershipOut])
def update_member_role(
    org_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: MemberRoleIn,
    ctx: OrgContext = Depends(require_perm("members:update_role")),
    db: Session = Depends(get_db),
) -> Envelope[MembershipOut]:
    target = db.get(Membership, member_id)
    if target is None or target.organization_id != org_id:
        raise NotFound("Membership not found")
    if target.role == Role.OWNER:
        raise Forbidden("Cannot modify OWNER role")
    if not can_assign(ctx.role, payload.role):
        raise Forbidden(f"Cannot assign {payload.role.value} role")

    target.role = payload.role
    db.commit()
    db.refresh(target)

    log.info("orgs.member_role_updated", org_id=str(org_id), member_id=str(member_id), role=target.role.value)
    return Envelope(data=membership_out(target))

@router.post("/{id}/invites", response_model=Envelope[InviteOut], status_code=status.HTTP_201_CREATED)
def create_invite(
    id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("invites:create")),
    db: Session = Depends(get_db),
) -> Envelope[InviteOut]:
    invite = Invite(
        organization_id=id,
        token=secrets.token_urlsafe(32),
        expires_at=now_utc() + timedelta(hours=settings.invite_ttl_hours),
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    return Envelope(data=InviteOut.model_validate(invite))
