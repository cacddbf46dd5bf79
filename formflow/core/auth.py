"""
Current Actor

Authentication happens upstream. The engine only needs the current user's
id, role and capability set, which the gateway forwards as request headers:

    X-User-Id: u-123
    X-User-Role: admin
    X-User-Capabilities: approvals:override, forms:preview
"""

import logging
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from formflow.models.enums import ActorRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """
    The user on whose behalf the engine acts.

    Capabilities are granted by the auth collaborator; the engine only checks
    membership and never derives them from the role.
    """
    id: str
    role: ActorRole = ActorRole.USER
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities


def parse_capabilities(raw: str | None) -> frozenset[str]:
    """Parse a comma or whitespace separated capability header."""
    if not raw:
        return frozenset()
    return frozenset(part for part in raw.replace(",", " ").split() if part)


async def get_current_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_user_capabilities: Annotated[str | None, Header()] = None,
) -> Actor:
    """
    Build the current actor from the forwarded identity headers.

    Raises:
        HTTPException: 401 if no user id was forwarded, 400 for an unknown role
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    try:
        role = ActorRole((x_user_role or ActorRole.USER.value).strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {x_user_role}",
        )

    return Actor(
        id=x_user_id.strip(),
        role=role,
        capabilities=parse_capabilities(x_user_capabilities),
    )


async def require_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Require the admin role (builder endpoints)."""
    if not actor.is_admin:
        logger.debug(f"Admin endpoint denied for actor {actor.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return actor


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
CurrentAdmin = Annotated[Actor, Depends(require_admin)]
