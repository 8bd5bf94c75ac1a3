"""
Enumeration definitions for the Sales CRM reporting backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models and FastAPI query parameter parsing.
"""

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """
    Position of a user in the sales organization.

    Hierarchy (top to bottom): supervisor → director → manager → agent.
    Support staff sit outside the reporting lines and see no customer records.

    The stored user rows carry the Chinese role labels used by the front end
    (主管, 总监, 经理, 业务, 后勤); `Role.parse` accepts either form.
    """
    SUPERVISOR = "supervisor"
    DIRECTOR = "director"
    MANAGER = "manager"
    AGENT = "agent"
    SUPPORT = "support"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        """
        Parse a stored role label.

        Returns None for anything unrecognized; callers treat that as a role
        with no visibility.
        """
        if value is None:
            return None
        if isinstance(value, Role):
            return value
        label = value.strip()
        if label in _ROLE_LABELS:
            return _ROLE_LABELS[label]
        try:
            return cls(label.lower())
        except ValueError:
            return None

    @property
    def label(self) -> str:
        """Chinese display label stored in the users table."""
        return _LABELS_BY_ROLE[self]


_ROLE_LABELS = {
    "主管": Role.SUPERVISOR,
    "总监": Role.DIRECTOR,
    "经理": Role.MANAGER,
    "业务": Role.AGENT,
    "后勤": Role.SUPPORT,
}

_LABELS_BY_ROLE = {role: label for label, role in _ROLE_LABELS.items()}


class Dimension(str, Enum):
    """
    Categorical axis along which customer records are grouped.

    - channel: acquisition channel of the lead
    - agent: owning user (createdBy)
    - team: the owning user's team label
    - day / week / month: the record date truncated to day, Monday-starting
      week, or month
    - country: the lead's current country
    """
    CHANNEL = "channel"
    AGENT = "agent"
    TEAM = "team"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    COUNTRY = "country"

    @property
    def is_temporal(self) -> bool:
        """True for the date-derived dimensions, which sort chronologically."""
        return self in (Dimension.DAY, Dimension.WEEK, Dimension.MONTH)


class MetricKey(str, Enum):
    """
    Names of the fifteen counters in a MetricVector.

    `total` counts records; every other key is a 0/1 indicator per record
    derived from its tags.
    """
    TOTAL = "total"
    READ_NO_REPLY = "readNoReply"
    NO_READ_NO_REPLY = "noReadNoReply"
    JOINED_GROUP = "joinedGroup"
    ANSWERED_CALL = "answeredCall"
    INVESTOR = "investor"
    BEGINNER = "beginner"
    FOLLOW_STOCK = "followStock"
    HOT_CHAT = "hotChat"
    REPLIED_TODAY = "repliedToday"
    STOCK_TRACKING = "stockTracking"
    SINCERE = "sincere"
    OPENED_ACCOUNT = "openedAccount"
    FIRST_DEPOSIT = "firstDeposit"
    ADDED_FUNDS = "addedFunds"


class TagCategory(str, Enum):
    """
    Category of a customer tag.

    - status: contact state (read-no-reply, joined-group, ...)
    - learning: the lead's trading profile (investor, beginner, ...)
    - conversion: funnel milestones (opened-account, deposit)
    """
    STATUS = "status"
    LEARNING = "learning"
    CONVERSION = "conversion"
