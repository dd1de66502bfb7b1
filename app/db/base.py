# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the scheduler service.
    """
    pass


# Import ORM models so that Base.metadata is aware of them
# This import should stay at the bottom to avoid circular dependencies.
from app.models.booked_slot import BookedSlot  # noqa: E402,F401
