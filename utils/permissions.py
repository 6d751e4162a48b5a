from dataclasses import dataclass, field, asdict
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional
from models.asset_permission import ASSIGNABLE_ASSET_ACTIONS, asset_permission_code
from models.permission import permission_code
from models.role import ADMIN_ROLE


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller as described by the verified token claims.

    Authorization never re-reads the role from the database; what the token
    carried at login is what the request is judged on.
    """
    user_id: int
    role: Optional[str] = None
    user_type: str = "INTERNAL"
    partner_category: Optional[str] = None
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def is_partner(self) -> bool:
        return (self.user_type or "").upper() == "PARTNER"

    @classmethod
    def from_claims(cls, identity: Any, claims: Mapping[str, Any]) -> 'Principal':
        return cls(
            user_id=int(claims.get("id", identity)),
            role=claims.get("role"),
            user_type=claims.get("userType") or "INTERNAL",
            partner_category=claims.get("partnerCategory"),
            permissions=frozenset(claims.get("permissions") or ()),
        )


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check; the reason is for server logs only."""
    allowed: bool
    reason: str

    @classmethod
    def allow(cls, reason: str) -> 'Decision':
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str) -> 'Decision':
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def evaluate_module_permission(principal: Optional[Principal], module: str, action: str) -> Decision:
    if principal is None:
        return Decision.deny("unauthenticated")
    if principal.is_admin:
        return Decision.allow("admin role")

    code = permission_code(module, action)
    if code in principal.permissions:
        return Decision.allow(f"role permission {code}")
    return Decision.deny(f"missing module permission {code}")


def evaluate_asset_permission(principal: Optional[Principal], resource_type: str, action: str,
                              granted_codes: Iterable[str] = ()) -> Decision:
    """
    Asset hierarchy check.

    READ is open to any authenticated principal. CREATE/UPDATE/DELETE need the
    code as a per-user grant; granted_codes comes from UserAssetPermission
    on every request, never from the token.
    """
    if principal is None:
        return Decision.deny("unauthenticated")
    if principal.is_admin:
        return Decision.allow("admin role")

    action = action.upper()
    if action == "READ":
        return Decision.allow("read is granted to authenticated users")
    if action not in ASSIGNABLE_ASSET_ACTIONS:
        return Decision.deny(f"unknown asset action {action}")

    code = asset_permission_code(resource_type, action)
    if code in set(granted_codes):
        return Decision.allow(f"user asset grant {code}")
    return Decision.deny(f"missing asset permission {code}")
