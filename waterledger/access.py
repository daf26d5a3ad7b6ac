"""
Role-based write authorization.

Three explicit memberships gate every mutation:
- owner: singleton fixed at genesis, manages the other two sets
- verifiers: may record quality measurements
- distributors: may track distributions

Grants and revokes are plain set assignments, so re-granting a member or
revoking a non-member succeeds without changing anything.
"""

from __future__ import annotations

from typing import Literal

from .errors import InvalidParameter, Unauthorized
from .state import LedgerState

Role = Literal["verifier", "distributor"]

ROLES: tuple[Role, ...] = ("verifier", "distributor")


class AccessRegistry:
    def __init__(self, state: LedgerState):
        self.state = state

    @property
    def owner(self) -> str:
        return self.state.owner

    # --- Queries ---

    def is_owner(self, identity: str) -> bool:
        return identity == self.state.owner

    def is_verifier(self, identity: str) -> bool:
        return identity in self.state.verifiers

    def is_distributor(self, identity: str) -> bool:
        return identity in self.state.distributors

    def members(self, role: Role) -> list[str]:
        return sorted(self._role_set(role))

    # --- Preconditions ---

    def require_owner(self, caller: str) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(caller, "owner")

    def require_verifier(self, caller: str) -> None:
        if not self.is_verifier(caller):
            raise Unauthorized(caller, "verifier")

    def require_distributor(self, caller: str) -> None:
        if not self.is_distributor(caller):
            raise Unauthorized(caller, "distributor")

    # --- Mutations (owner only) ---

    def grant(self, caller: str, role: Role, target: str) -> bool:
        """Add `target` to `role`. Returns True if membership changed."""
        members = self._check_mutation(caller, role, target)
        if target in members:
            return False
        members.add(target)
        return True

    def revoke(self, caller: str, role: Role, target: str) -> bool:
        """Remove `target` from `role`. Returns True if membership changed."""
        members = self._check_mutation(caller, role, target)
        if target not in members:
            return False
        members.discard(target)
        return True

    def grant_verifier(self, caller: str, target: str) -> bool:
        return self.grant(caller, "verifier", target)

    def revoke_verifier(self, caller: str, target: str) -> bool:
        return self.revoke(caller, "verifier", target)

    def grant_distributor(self, caller: str, target: str) -> bool:
        return self.grant(caller, "distributor", target)

    def revoke_distributor(self, caller: str, target: str) -> bool:
        return self.revoke(caller, "distributor", target)

    def _check_mutation(self, caller: str, role: Role, target: str) -> set[str]:
        self.require_owner(caller)
        if not isinstance(target, str) or not target.strip():
            raise InvalidParameter("target", target, "a non-empty identity")
        return self._role_set(role)

    def _role_set(self, role: Role) -> set[str]:
        if role == "verifier":
            return self.state.verifiers
        if role == "distributor":
            return self.state.distributors
        raise ValueError(f"Unknown role: {role}")
