import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskhub.auth.deps import Identity, get_identity
from taskhub.auth.tokens import as_utc, now_utc
from taskhub.db import get_db
from taskhub.errors import Conflict, Gone, NotFound
from taskhub.models.enums import Role
from taskhub.models.invite import Invite
from taskhub.models.membership import Membership
from taskhub.rbac.deps import find_membership
from taskhub.routes.orgs import membership_out
from taskhub.schemas.common import Envelope
from taskhub.schemas.orgs import InviteAcceptIn, MembershipOut

log = structlog.get_logger()

router = APIRouter(prefix="/api/invites", tags=["invites"])

@router.post("/accept", response_model=Envelope[MembershipOut])
def accept_invite(
    payload: InviteAcceptIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Envelope[MembershipOut]:
    token = payload.token.strip()
    now = now_utc()

    invite = db.scalar(select(Invite).where(Invite.token == token))
    if invite is None:
        raise NotFound("Invite not found")
    if invite.used_at is not None:
        raise Gone("Invite already used")
    if as_utc(invite.expires_at) <= now:
        raise Gone("Invite expired")

    if find_membership(db, invite.organization_id, identity.user_id) is not None:
        raise Conflict("Already a member")

    # atomic single-use gate; the membership insert commits with it
    stmt = (
        update(Invite)
        .where(Invite.id == invite.id)
        .where(Invite.used_at.is_(None))
        .values(used_at=now)
        .returning(Invite.id)
        .execution_options(synchronize_session=False)
    )
    if db.scalar(stmt) is None:
        db.rollback()
        raise Gone("Invite already used")

    m = Membership(organization_id=invite.organization_id, user_id=identity.user_id, role=Role.MEMBER)
    db.add(m)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Already a member") from exc
    db.refresh(m)

    log.info("invites.accepted", org_id=str(m.organization_id), user_id=identity.id)
    return Envelope(data=membership_out(m))
