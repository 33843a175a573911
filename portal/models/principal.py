from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Passed explicitly into every service call that acts on behalf of a
    learner; nothing in the portal looks up "the current user" from
    ambient state.

        user_id: subject from JWT
        roles: platform roles (learner, admin)
        token_id: jti of the access token, used by logout
    """

    user_id: str
    roles: frozenset[str]
    token_id: str | None = None

    def has_role(self, role: str) -> bool:
        return role in self.roles
