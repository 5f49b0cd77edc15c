"""
Status and category vocabularies shared by the OfficeSphere models.

Values are stored lower-case and hyphenated where they are statuses, and
in display form where they are categories (departments, industries).
`normalize_choice` maps loose client input onto these values.
"""

import re
from enum import Enum
from typing import Optional, TypeVar

E = TypeVar("E", bound=Enum)


class UserRole(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    CLIENT = "client"


class Department(str, Enum):
    DEVELOPMENT = "Development"
    DESIGN = "Design"
    MARKETING = "Marketing"
    SALES = "Sales"
    HR = "HR"
    FINANCE = "Finance"
    OPERATIONS = "Operations"
    MANAGEMENT = "Management"


class Industry(str, Enum):
    TECHNOLOGY = "Technology"
    HEALTHCARE = "Healthcare"
    FINANCE = "Finance"
    EDUCATION = "Education"
    RETAIL = "Retail"
    MANUFACTURING = "Manufacturing"
    REAL_ESTATE = "Real Estate"
    OTHER = "Other"


class CompanySize(str, Enum):
    MICRO = "1-10"
    SMALL = "11-50"
    MEDIUM = "51-200"
    LARGE = "201-500"
    XLARGE = "501-1000"
    ENTERPRISE = "1000+"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in-progress"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TeamRole(str, Enum):
    DEVELOPER = "Developer"
    DESIGNER = "Designer"
    TESTER = "Tester"
    TEAM_LEAD = "Team Lead"
    OTHER = "Other"


class MilestoneStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEAVE = "leave"
    HALF_DAY = "half-day"
    WORK_FROM_HOME = "work-from-home"


class RequestStatus(str, Enum):
    """Review state of correction and leave requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveType(str, Enum):
    SICK = "sick"
    CASUAL = "casual"
    ANNUAL = "annual"
    UNPAID = "unpaid"
    OTHER = "other"


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class MeetingType(str, Enum):
    TEAM = "team"
    CLIENT = "client"
    PROJECT = "project"
    ONE_ON_ONE = "one-on-one"
    REVIEW = "review"
    OTHER = "other"


class ParticipantRole(str, Enum):
    ORGANIZER = "organizer"
    REQUIRED = "required"
    OPTIONAL = "optional"


class ParticipantStatus(str, Enum):
    INVITED = "invited"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"
    ATTENDED = "attended"
    ABSENT = "absent"


class ReportStatus(str, Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    APPROVED = "approved"


class Mood(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    NEUTRAL = "neutral"
    STRESSED = "stressed"
    OVERWHELMED = "overwhelmed"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    TASK = "task"
    PROJECT = "project"
    MEETING = "meeting"
    ATTENDANCE = "attendance"
    FEEDBACK = "feedback"


ATTENDANCE_STATUS_ALIASES = {
    "on-leave": AttendanceStatus.LEAVE,
    "wfh": AttendanceStatus.WORK_FROM_HOME,
    "remote": AttendanceStatus.WORK_FROM_HOME,
    "halfday": AttendanceStatus.HALF_DAY,
}

STATUS_ALIASES: dict[type, dict[str, Enum]] = {
    AttendanceStatus: ATTENDANCE_STATUS_ALIASES,
    ProjectStatus: {"inprogress": ProjectStatus.IN_PROGRESS, "active": ProjectStatus.IN_PROGRESS},
    TaskStatus: {
        "inprogress": TaskStatus.IN_PROGRESS,
        "todo": TaskStatus.PENDING,
        "done": TaskStatus.COMPLETED,
    },
}


def _choice_key(value: str) -> str:
    key = re.sub(r"[\s_]+", "-", value.strip().lower())
    return re.sub(r"-{2,}", "-", key)


def normalize_choice(value, enum_cls: type[E], aliases: Optional[dict[str, E]] = None) -> E:
    """
    Map loose input ("In Progress", "in_progress", "IN-PROGRESS") to a member.

    Raises:
        ValueError: if the value matches no member or alias
    """
    if isinstance(value, enum_cls):
        return value
    if value is None:
        raise ValueError(f"{enum_cls.__name__} value is required")

    key = _choice_key(str(value))
    if aliases is None:
        aliases = STATUS_ALIASES.get(enum_cls, {})
    if key in aliases:
        return aliases[key]

    for member in enum_cls:
        if _choice_key(member.value) == key:
            return member

    allowed = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__} '{value}'. Allowed values: {allowed}")


def enum_values(data: dict) -> dict:
    """Replace enum members with their raw values before storing a dump."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}
