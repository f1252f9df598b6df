"""EventHub database models."""

from app.models.audit_log import AuditLog
from app.models.base import Base
from app.models.event import Event, EventStatus, EventType, Requirement, RequirementCategory, RequirementStatus
from app.models.message import Message
from app.models.notification import Notification
from app.models.proposal import Proposal, ProposalStatus
from app.models.user import User, UserRole

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Event",
    "EventType",
    "EventStatus",
    "Requirement",
    "RequirementCategory",
    "RequirementStatus",
    "Proposal",
    "ProposalStatus",
    "Notification",
    "Message",
    "AuditLog",
]
