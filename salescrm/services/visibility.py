"""
Visibility resolution service for the Sales CRM reporting backend.

Computes which customer records a caller may see from the organization's
reporting lines. This is the single role dispatch used by every consumer
(customer listing, report builder, summary tables, overview), so the
customers page and the reports page cannot drift apart.

Visibility by role:

| Role       | Visible record owners                                        |
|------------|--------------------------------------------------------------|
| supervisor | everyone, including records with no owner                     |
| director   | self + managers reporting to them + agents under those managers |
| manager    | self + agents reporting to them                               |
| agent      | self                                                          |
| support    | nobody                                                        |

Any role outside this table resolves to nobody (fail closed).

The module also validates supervisor reassignments so the reporting lines
stay a forest.

Key Functions:
- resolve_visibility: caller + directory snapshot → VisibilityScope
- filter_visible: apply a scope to a record snapshot
- visible_records: convenience composition of the two
- validate_supervisor_assignment: reject self-references, unknown ids, cycles
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from salescrm.models.enums import Role
from salescrm.models.schemas import Caller, CustomerRecord, User


logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class HierarchyError(ValueError):
    """Base class for invalid reporting-line changes."""


class UnknownUserError(HierarchyError):
    """A referenced user id does not exist in the directory."""


class HierarchyCycleError(HierarchyError):
    """The requested supervisor link would close a reporting-line cycle."""


# =============================================================================
# Visibility Scope
# =============================================================================


@dataclass(frozen=True)
class VisibilityScope:
    """
    Set of record owners a caller may see.

    Attributes:
        unrestricted: True when every record is visible, owned or not.
        owner_ids: Authorized owner ids when not unrestricted. Records with no
            owner are only visible to an unrestricted scope.
    """
    unrestricted: bool = False
    owner_ids: FrozenSet[str] = frozenset()

    @classmethod
    def everyone(cls) -> "VisibilityScope":
        return cls(unrestricted=True)

    @classmethod
    def nobody(cls) -> "VisibilityScope":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and not self.owner_ids

    def allows(self, record: CustomerRecord) -> bool:
        if self.unrestricted:
            return True
        return record.createdBy is not None and record.createdBy in self.owner_ids


def _direct_reports(users: Iterable[User], supervisor_ids: FrozenSet[str]) -> List[User]:
    return [u for u in users if u.supervisorId is not None and u.supervisorId in supervisor_ids]


def resolve_visibility(caller: Caller, users: Iterable[User]) -> VisibilityScope:
    """
    Resolve the set of record owners visible to a caller.

    The directory is scanned at most twice: once for the caller's direct
    reports and, for directors, once more for the reports of those managers.
    Deeper levels are never followed, so a malformed hierarchy cannot loop.

    Args:
        caller: Authenticated caller (id and role from the verified session).
        users: Snapshot of the user directory.

    Returns:
        VisibilityScope for the caller. Unknown roles get an empty scope.
    """
    role = caller.role
    if role is Role.SUPERVISOR:
        return VisibilityScope.everyone()
    if role is Role.AGENT:
        return VisibilityScope(owner_ids=frozenset({caller.id}))
    if role is Role.SUPPORT:
        return VisibilityScope.nobody()
    if role not in (Role.MANAGER, Role.DIRECTOR):
        logger.warning(f"Caller {caller.id} has unrecognized role; no records visible")
        return VisibilityScope.nobody()

    users = list(users)
    direct = _direct_reports(users, frozenset({caller.id}))
    owner_ids = {caller.id}
    owner_ids.update(u.id for u in direct)

    if role is Role.DIRECTOR:
        # Second hop: the managers' own reports.
        manager_ids = frozenset(u.id for u in direct)
        if manager_ids:
            owner_ids.update(u.id for u in _direct_reports(users, manager_ids))

    return VisibilityScope(owner_ids=frozenset(owner_ids))


def filter_visible(
    records: Iterable[CustomerRecord],
    scope: VisibilityScope
) -> List[CustomerRecord]:
    """Keep the records a scope allows, preserving input order."""
    if scope.is_empty:
        return []
    return [record for record in records if scope.allows(record)]


def visible_records(
    caller: Caller,
    users: Iterable[User],
    records: Iterable[CustomerRecord]
) -> List[CustomerRecord]:
    """
    Return the records a caller may see from a directory and record snapshot.

    Example:
        >>> visible_records(Caller(id="x", role=None), users, records)
        []
    """
    return filter_visible(records, resolve_visibility(caller, users))


# =============================================================================
# Hierarchy Validation
# =============================================================================


def validate_supervisor_assignment(
    user_id: str,
    supervisor_id: Optional[str],
    users: Iterable[User]
) -> None:
    """
    Check that pointing `user_id` at `supervisor_id` keeps the hierarchy a forest.

    Walks up from the proposed supervisor through the current links. Reaching
    `user_id` means the new link would close a cycle.

    Args:
        user_id: User whose supervisor is being changed.
        supervisor_id: Proposed supervisor, or None to make the user a root.
        users: Snapshot of the user directory.

    Raises:
        UnknownUserError: If either id is not in the directory.
        HierarchyCycleError: If the link is a self-reference or closes a cycle.
    """
    by_id: Dict[str, User] = {u.id: u for u in users}
    if user_id not in by_id:
        raise UnknownUserError(f"Unknown user {user_id}")
    if supervisor_id is None:
        return
    if supervisor_id not in by_id:
        raise UnknownUserError(f"Unknown supervisor {supervisor_id}")
    if supervisor_id == user_id:
        raise HierarchyCycleError(f"User {user_id} cannot supervise themselves")

    seen = set()
    current: Optional[str] = supervisor_id
    while current is not None and current not in seen:
        if current == user_id:
            raise HierarchyCycleError(
                f"Assigning {supervisor_id} as supervisor of {user_id} creates a cycle"
            )
        seen.add(current)
        parent = by_id.get(current)
        current = parent.supervisorId if parent is not None else None
