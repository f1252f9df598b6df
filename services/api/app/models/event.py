"""Event model and the vendor requirements it owns."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_values


class EventType(str, enum.Enum):
    WEDDING = "wedding"
    MEHENDI = "mehendi"
    BIRTHDAY = "birthday"
    CORPORATE = "corporate"
    OTHER = "other"


class EventStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequirementCategory(str, enum.Enum):
    CATERING = "Catering"
    PHOTOGRAPHY = "Photography"
    DECORATION = "Decoration"
    MUSIC = "Music"
    MAKEUP = "Makeup"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> "RequirementCategory":
        """Case-insensitive lookup ("catering" -> CATERING). Raises ValueError."""
        normalized = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unrecognized category: {value!r}")


class RequirementStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, name="event_type", values_callable=enum_values),
        nullable=False,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(500), nullable=False)
    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus, name="event_status", values_callable=enum_values),
        default=EventStatus.UPCOMING,
        nullable=False,
    )
    budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    guest_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Relationships
    requirements: Mapped[list["Requirement"]] = relationship(
        "Requirement",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Requirement.position",
        lazy="selectin",
    )

    def requirement(self, requirement_id: uuid.UUID) -> "Requirement | None":
        for req in self.requirements:
            if req.id == requirement_id:
                return req
        return None

    @property
    def is_frozen(self) -> bool:
        """A cancelled event accepts no new requirements, proposals or approvals."""
        return self.status == EventStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<Event {self.id} title={self.title!r} status={self.status}>"


class Requirement(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "event_requirements"
    __table_args__ = (
        CheckConstraint(
            "(status = 'open' AND assigned_vendor_id IS NULL)"
            " OR (status <> 'open' AND assigned_vendor_id IS NOT NULL)",
            name="ck_requirement_assignment",
        ),
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[RequirementCategory] = mapped_column(
        Enum(RequirementCategory, name="requirement_category", values_callable=enum_values),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[RequirementStatus] = mapped_column(
        Enum(RequirementStatus, name="requirement_status", values_callable=enum_values),
        default=RequirementStatus.OPEN,
        nullable=False,
        index=True,
    )
    # Plain reference, no FK: an assignment stays readable after the vendor account is gone.
    assigned_vendor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    event: Mapped["Event"] = relationship("Event", back_populates="requirements")

    def __repr__(self) -> str:
        return f"<Requirement {self.id} category={self.category} status={self.status}>"
