from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, CheckConstraint, Index
from agenda.db import Base


class AccessCodeRecord(Base):
    __tablename__ = "access_codes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False)
    location = Column(String)
    status = Column(String, nullable=False, default="active")  # active|deactivated
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("role in ('admin','provider','requester')", name="access_code_role_valid"),
        CheckConstraint("status in ('active','deactivated')", name="access_code_status_valid"),
        CheckConstraint("length(code) > 0", name="access_code_not_blank"),
    )


class AvailabilityRecord(Base):
    __tablename__ = "availabilities"
    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    capacity = Column(Integer, nullable=False)
    remaining_slots = Column(Integer, nullable=False)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="availability_time_valid"),
        CheckConstraint("capacity >= 1", name="availability_capacity_valid"),
        CheckConstraint(
            "remaining_slots >= 0 AND remaining_slots <= capacity",
            name="availability_remaining_valid",
        ),
        Index("ix_availabilities_date_start", "date", "start_time"),
    )


class BookingRecord(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    availability_id = Column(Integer, ForeignKey("availabilities.id"), nullable=False, index=True)
    client_name = Column(String, nullable=False)
    client_document = Column(String)
    client_phone = Column(String)
    service_number = Column(String, nullable=False)
    time_slot = Column(String(5), nullable=False)  # HH:MM
    comments = Column(String)
    created_by = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="confirmed")  # confirmed|cancelled

    __table_args__ = (
        CheckConstraint("status in ('confirmed','cancelled')", name="booking_status_valid"),
    )
