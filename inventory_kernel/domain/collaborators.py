"""
External collaborator protocols.

The workflow does not manage authentication or role storage; it consumes
a resolved ``ActorInfo`` through ``ActorResolver``.  ``StaticActorResolver``
is the in-memory implementation used by the CLI and the test suite.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from inventory_kernel.domain.dtos import ActorInfo
from inventory_kernel.domain.workflow import Role


class ActorResolver(Protocol):
    """Resolves an actor id to its role, unit and approval flag.

    Returns None when the actor is unknown.
    """

    def resolve(self, actor_id: UUID) -> ActorInfo | None: ...


class StaticActorResolver:
    """Dictionary-backed ActorResolver."""

    def __init__(self, actors: dict[UUID, ActorInfo] | None = None):
        self._actors: dict[UUID, ActorInfo] = dict(actors or {})

    def register(
        self,
        actor_id: UUID,
        role: Role | str,
        organizational_unit_id: UUID | None = None,
        approved: bool = True,
    ) -> ActorInfo:
        info = ActorInfo(
            actor_id=actor_id,
            role=Role(role),
            organizational_unit_id=organizational_unit_id,
            approved=approved,
        )
        self._actors[actor_id] = info
        return info

    def resolve(self, actor_id: UUID) -> ActorInfo | None:
        return self._actors.get(actor_id)
