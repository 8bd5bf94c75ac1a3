"""
Data access for the Sales CRM reporting backend.

Reads the user directory and customer records from PostgreSQL via asyncpg and
converts rows into Pydantic models. A report request reads each of the two
tables once at the start (a point-in-time snapshot); everything after that is
in-memory computation.

Key Functions:
- fetch_users: full user directory
- fetch_customers: customer records restricted to a VisibilityScope
- load_snapshot: directory + caller-visible records, each read bounded by a timeout
- update_user_supervisor: validated supervisor reassignment

Tables:
- users(id, name, nickname, role, team, supervisor_id)
- customers(id, name, created_by, channel, country, date, tags jsonb,
  last_reply_at, conversation_count, reply_count)
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from asyncpg import Connection

from salescrm.models.schemas import Caller, CustomerRecord, Tag, User
from salescrm.services.visibility import (
    VisibilityScope,
    filter_visible,
    resolve_visibility,
    validate_supervisor_assignment,
)


logger = logging.getLogger(__name__)


class SnapshotTimeoutError(TimeoutError):
    """An upstream read did not complete within the configured timeout."""


USER_COLUMNS = "id, name, nickname, role, team, supervisor_id"

CUSTOMER_COLUMNS = (
    "id, name, created_by, channel, country, date, tags, "
    "last_reply_at, conversation_count, reply_count"
)

LOCK_USERS_FOR_REASSIGNMENT = "LOCK TABLE users IN SHARE ROW EXCLUSIVE MODE"


# =============================================================================
# Row Conversion
# =============================================================================


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def user_from_row(row: Mapping[str, Any]) -> User:
    return User(
        id=str(row['id']),
        name=row.get('name'),
        nickname=row.get('nickname'),
        role=row.get('role'),
        team=row.get('team'),
        supervisorId=_optional_str(row.get('supervisor_id')),
    )


def _parse_tags(raw: Any) -> List[Tag]:
    # asyncpg returns jsonb as text unless a codec is registered
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    return [Tag.model_validate(item) for item in raw if isinstance(item, dict) and item.get('label')]


def customer_from_row(row: Mapping[str, Any]) -> CustomerRecord:
    return CustomerRecord(
        id=str(row['id']),
        name=row.get('name'),
        createdBy=_optional_str(row.get('created_by')),
        channel=row.get('channel'),
        country=row.get('country'),
        date=_optional_str(row.get('date')),
        tags=_parse_tags(row.get('tags')),
        lastReplyAt=_optional_str(row.get('last_reply_at')),
        conversationCount=row.get('conversation_count') or 0,
        replyCount=row.get('reply_count') or 0,
    )


# =============================================================================
# Reads
# =============================================================================


async def fetch_users(conn: Connection) -> List[User]:
    """Read the full user directory."""
    rows = await conn.fetch(f"SELECT {USER_COLUMNS} FROM users")
    return [user_from_row(row) for row in rows]


async def fetch_customers(conn: Connection, scope: VisibilityScope) -> List[CustomerRecord]:
    """
    Read the customer records a scope allows.

    An empty scope returns immediately without touching the database.
    """
    if scope.is_empty:
        return []

    if scope.unrestricted:
        rows = await conn.fetch(f"SELECT {CUSTOMER_COLUMNS} FROM customers")
    else:
        rows = await conn.fetch(
            f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE created_by = ANY($1::varchar[])",
            sorted(scope.owner_ids),
        )

    return filter_visible((customer_from_row(row) for row in rows), scope)


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time directory and caller-visible records for one request."""
    users: List[User]
    records: List[CustomerRecord]
    scope: VisibilityScope


async def _bounded(awaitable, timeout: float, what: str):
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise SnapshotTimeoutError(f"Reading {what} exceeded {timeout}s") from e


async def load_snapshot(conn: Connection, caller: Caller, timeout: float) -> Snapshot:
    """
    Read the directory and the caller-visible records.

    Each of the two reads is bounded by `timeout` seconds.

    Raises:
        SnapshotTimeoutError: If either read times out.
    """
    users = await _bounded(fetch_users(conn), timeout, "user directory")
    scope = resolve_visibility(caller, users)
    records = await _bounded(fetch_customers(conn, scope), timeout, "customer records")

    logger.info(
        f"Snapshot for {caller.id}: {len(users)} users, {len(records)} visible records"
    )
    return Snapshot(users=users, records=records, scope=scope)


# =============================================================================
# Writes
# =============================================================================


async def update_user_supervisor(
    conn: Connection,
    user_id: str,
    supervisor_id: Optional[str]
) -> User:
    """
    Reassign a user's supervisor after checking the hierarchy stays a forest.

    The directory is read and the row updated inside one transaction that
    first takes a SHARE ROW EXCLUSIVE lock on users. The lock conflicts with
    itself, so concurrent reassignments run one after another and each one
    validates against the links the previous one committed. Plain reads are
    not blocked.

    Raises:
        UnknownUserError: If either id does not exist.
        HierarchyCycleError: If the new link would create a cycle.
    """
    async with conn.transaction():
        await conn.execute(LOCK_USERS_FOR_REASSIGNMENT)
        users = await fetch_users(conn)
        validate_supervisor_assignment(user_id, supervisor_id, users)
        row = await conn.fetchrow(
            f"UPDATE users SET supervisor_id = $2 WHERE id = $1 RETURNING {USER_COLUMNS}",
            user_id,
            supervisor_id,
        )

    logger.info(f"Supervisor of {user_id} set to {supervisor_id}")
    return user_from_row(row)
