"""SQLAlchemy ORM models — mapping of the derby database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
The tables predate this service and use camelCase column names, so each
snake_case attribute names its column explicitly ("eventId", "carName").

Flag columns are BIT(1) on MySQL. The driver hands those back as raw bytes
(b"\\x00" / b"\\x01"), and a plain Boolean would treat b"\\x00" as truthy;
the Flag type below decodes them properly.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.mysql import BIT
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from pinewood.schemas.common import normalize_bool


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Flag(TypeDecorator):
    """Boolean stored as BIT(1) on MySQL and as a plain boolean elsewhere."""

    impl = Boolean
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "mysql":
            return dialect.type_descriptor(BIT(1))
        return dialect.type_descriptor(Boolean())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "mysql":
            return 1 if value else 0
        return bool(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return bool(normalize_bool(value))


class User(Base):
    """Scorekeeper / admin account. `eventIds` is a comma-separated list."""

    __tablename__ = "Users"

    user_id: Mapped[int] = mapped_column("userId", Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    admin: Mapped[bool] = mapped_column(Flag, default=False, nullable=False)
    event_ids: Mapped[Optional[str]] = mapped_column("eventIds", String(255))


class Event(Base):
    __tablename__ = "Events"

    event_id: Mapped[int] = mapped_column("eventId", Integer, primary_key=True)
    event_name: Mapped[str] = mapped_column("eventName", String(200), nullable=False)
    event_date: Mapped[Optional[date]] = mapped_column("eventDate", Date)
    multiplier: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    hidden: Mapped[bool] = mapped_column(Flag, default=False, nullable=False)
    enable_voting: Mapped[bool] = mapped_column(
        "enableVoting", Flag, default=False, nullable=False
    )


class Car(Base):
    """A car entered in an event. `imageVersion` busts client image caches."""

    __tablename__ = "Cars"

    car_id: Mapped[int] = mapped_column("carId", Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        "eventId",
        Integer,
        ForeignKey("Events.eventId", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    car_name: Mapped[str] = mapped_column("carName", String(100), nullable=False)
    car_number: Mapped[Optional[int]] = mapped_column("carNumber", Integer)
    owner: Mapped[Optional[str]] = mapped_column(String(100))
    den: Mapped[Optional[str]] = mapped_column(String(50))
    image_version: Mapped[int] = mapped_column(
        "imageVersion", Integer, default=0, server_default="0", nullable=False
    )


class Result(Base):
    """One lane of one heat. Written by the track timer, read-only here."""

    __tablename__ = "Results"

    result_id: Mapped[int] = mapped_column("resultId", Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column("eventId", Integer, nullable=False, index=True)
    heat: Mapped[int] = mapped_column(Integer, nullable=False)
    lane: Mapped[int] = mapped_column(Integer, nullable=False)
    car_id: Mapped[Optional[int]] = mapped_column("carId", Integer)
    time: Mapped[Optional[float]] = mapped_column(Float)
    place: Mapped[Optional[int]] = mapped_column(Integer)


class CheckIn(Base):
    """Self-service check-in from the registration kiosk (photo on disk)."""

    __tablename__ = "CheckIn"

    check_in_id: Mapped[str] = mapped_column("checkInId", String(36), primary_key=True)
    car_name: Mapped[str] = mapped_column("carName", String(100), nullable=False)
    nickname: Mapped[Optional[str]] = mapped_column(String(100))
    den: Mapped[Optional[str]] = mapped_column(String(50))
    time: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    added_to_event_id: Mapped[Optional[int]] = mapped_column("addedToEventId", Integer)


class Vote(Base):
    __tablename__ = "Votes"

    car_id: Mapped[int] = mapped_column("carId", Integer, primary_key=True, autoincrement=False)
    votes: Mapped[int] = mapped_column("Votes", Integer, default=0, nullable=False)


class Achievement(Base):
    __tablename__ = "Achievements"

    car_id: Mapped[int] = mapped_column("carId", Integer, primary_key=True, autoincrement=False)
    achievement: Mapped[str] = mapped_column(String(100), primary_key=True)
