"""Vendor proposal model."""

import enum
import uuid

from sqlalchemy import Enum, Float, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_values
from app.models.event import RequirementCategory


class ProposalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Proposal(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "proposals"

    # Nulled (not deleted) when the vendor account is removed
    vendor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requirement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("event_requirements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[RequirementCategory] = mapped_column(
        Enum(RequirementCategory, name="requirement_category", values_callable=enum_values),
        nullable=False,
    )
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[ProposalStatus] = mapped_column(
        Enum(ProposalStatus, name="proposal_status", values_callable=enum_values),
        default=ProposalStatus.PENDING,
        nullable=False,
        index=True,
    )
    portfolio: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    # [{"description": str, "images": [str]}]
    previous_work: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<Proposal {self.id} vendor_id={self.vendor_id} status={self.status}>"
