from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from servicehub.core.config import Settings, get_settings
from servicehub.directory import Actor, DirectoryRepository, Profile, Role

bearer_scheme = HTTPBearer(auto_error=False)


def resolve_user_id(token: str | None, settings: Settings) -> str:
    """Return the profile id registered for the bearer token."""

    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication credentials")
    user_id = settings.auth_tokens.get(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return user_id


def actor_from_profile(profile: Profile) -> Actor:
    try:
        role = Role(profile.role)
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Role '{profile.role}' cannot use the ticket API") from None
    return Actor(user_id=profile.user_id, role=role, name=profile.name)


async def get_directory(request: Request) -> DirectoryRepository:
    directory = getattr(request.app.state, "directory", None)
    if directory is None:
        raise HTTPException(status_code=503, detail="Directory is not available")
    return directory


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    directory: Annotated[DirectoryRepository, Depends(get_directory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Actor:
    """Resolve the caller from the bearer token and their profile.

    The role is read from the profile on every request, so a role change takes
    effect without reissuing tokens.
    """

    cached = getattr(request.state, "actor", None)
    if isinstance(cached, Actor):
        return cached

    token = credentials.credentials if credentials is not None else None
    user_id = resolve_user_id(token, settings)
    profile = await directory.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    actor = actor_from_profile(profile)
    request.state.actor = actor
    return actor


def role_required(role: Role) -> Callable[[Actor], Actor]:
    """Dependency factory ensuring the current actor has the requested role."""

    async def dependency(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if actor.role is not role:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return actor

    return dependency


require_admin = role_required(Role.ADMIN)

CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(require_admin)]
