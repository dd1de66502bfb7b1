# app/models/booked_slot.py
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Time,
    UniqueConstraint,
    func,
)

from app.db.base import Base


class BookedSlot(Base):
    """
    Reservation of a single (date, time) slot.

    The composite unique constraint is what makes `reserve` atomic: two
    concurrent inserts for the same slot cannot both commit.
    """

    __tablename__ = "booked_slots"

    id = Column(Integer, primary_key=True, index=True)

    slot_date = Column(Date, nullable=False, index=True)
    slot_time = Column(Time, nullable=False)

    meeting_id = Column(String(255), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "slot_date",
            "slot_time",
            name="uq_booked_slots_date_time",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BookedSlot id={self.id} date={self.slot_date} "
            f"time={self.slot_time} meeting_id={self.meeting_id}>"
        )
