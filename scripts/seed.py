import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.auth.crypto import hash_password, verify_password
from taskhub.db import SessionLocal, init_db
from taskhub.models.enums import Role
from taskhub.models.membership import Membership
from taskhub.models.org import Organization
from taskhub.models.task import Task
from taskhub.models.team import TaskList, Team
from taskhub.models.user import User

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "Demo1234"
USER2_EMAIL = "user2@example.com"
USER2_PASSWORD = "User2Pass!"

@dataclass
class SeedResult:
    demo_email: str
    user2_email: str
    org_id: uuid.UUID
    team_id: uuid.UUID
    list_id: uuid.UUID
    task_id: uuid.UUID

def get_or_create_user(db: Session, email: str, password: str) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(email=email, username=email.split("@", 1)[0])
        db.add(u)
    # re-running keeps the documented password valid
    if not verify_password(password, u.password_hash):
        u.password_hash = hash_password(password)
    db.flush()
    return u

def get_or_create_org(db: Session, name: str, owner: User) -> Organization:
    o = db.scalar(select(Organization).where(Organization.name == name, Organization.owner_id == owner.id))
    if o is None:
        o = Organization(name=name, owner_id=owner.id)
        db.add(o)
        db.flush()
    return o

def get_or_create_membership(db: Session, org_id: uuid.UUID, user_id: uuid.UUID, role: Role) -> Membership:
    m = db.scalar(select(Membership).where(Membership.organization_id == org_id, Membership.user_id == user_id))
    if m is None:
        m = Membership(organization_id=org_id, user_id=user_id, role=role)
        db.add(m)
        db.flush()
    elif m.role != role and m.role != Role.OWNER:
        m.role = role
        db.flush()
    return m

def seed() -> SeedResult:
    init_db()
    db = SessionLocal()
    try:
        demo = get_or_create_user(db, DEMO_EMAIL, DEMO_PASSWORD)
        user2 = get_or_create_user(db, USER2_EMAIL, USER2_PASSWORD)

        org = get_or_create_org(db, "demo org", demo)
        get_or_create_membership(db, org.id, demo.id, Role.OWNER)
        get_or_create_membership(db, org.id, user2.id, Role.MEMBER)

        team = db.scalar(select(Team).where(Team.organization_id == org.id, Team.name == "core"))
        if team is None:
            team = Team(organization_id=org.id, name="core")
            db.add(team)
            db.flush()

        task_list = db.scalar(select(TaskList).where(TaskList.team_id == team.id, TaskList.name == "backlog"))
        if task_list is None:
            task_list = TaskList(team_id=team.id, name="backlog")
            db.add(task_list)
            db.flush()

        task = db.scalar(select(Task).where(Task.task_list_id == task_list.id, Task.title == "seeded task"))
        if task is None:
            task = Task(task_list_id=task_list.id, title="seeded task", created_by=demo.id, owner_id=user2.id)
            db.add(task)
            db.flush()

        db.commit()

        return SeedResult(
            demo_email=demo.email,
            user2_email=user2.email,
            org_id=org.id,
            team_id=team.id,
            list_id=task_list.id,
            task_id=task.id,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"org_id={r.org_id}")
    print(f"team_id={r.team_id}")
    print(f"list_id={r.list_id}")
    print(f"task_id={r.task_id}")
    print("users:")
    print(f"  owner:  {r.demo_email} / {DEMO_PASSWORD}")
    print(f"  member: {r.user2_email} / {USER2_PASSWORD}")
