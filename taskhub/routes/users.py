from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskhub.auth.deps import get_current_user
from taskhub.db import get_db
from taskhub.models.user import User
from taskhub.schemas.common import Envelope
from taskhub.schemas.users import UserOut, UserUpdateIn

router = APIRouter(prefix="/api/users", tags=["users"])

@router.get("/me", response_model=Envelope[UserOut])
def me(user: User = Depends(get_current_user)) -> Envelope[UserOut]:
    return Envelope(data=UserOut.model_validate(user))

@router.patch("/me", response_model=Envelope[UserOut])
def update_me(
    payload: UserUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Envelope[UserOut]:
    if payload.username is not None:
        user.username = payload.username
    db.commit()
    db.refresh(user)
    return Envelope(data=UserOut.model_validate(user))
