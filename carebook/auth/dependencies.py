import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from carebook.auth import jwt_handler
from carebook.database import get_db
from carebook.models.user import User
from carebook.scheduling.domain import Actor, ActorRole

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        email = jwt_handler.read_subject(token)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is deactivated")
    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    try:
        role = ActorRole((current_user.role or "").strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=403, detail="User has no scheduling role") from exc
    return Actor(actor_id=current_user.id, role=role)
