from fastapi import APIRouter, Depends

from carebook.auth.dependencies import get_current_actor, get_current_user
from carebook.models.user import User
from carebook.scheduling.domain import Actor

router = APIRouter(tags=['auth'])


@router.get('/me')
def me(
    current_user: User = Depends(get_current_user),
    actor: Actor = Depends(get_current_actor),
):
    return {'id': actor.actor_id, 'email': current_user.email, 'role': actor.role.value}
