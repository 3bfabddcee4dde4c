# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School tables: classes, students, and the enrollment audit trail.

Tables:
    classes: Class directory with the denormalized occupancy counter.
    students: Student directory.
    enrollments: Student-to-class assignments; status is the only mutation.
    class_transfers: Write-once transfer audit entries.
    student_exits: Write-once exit audit entries.
"""

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from student_lifecycle.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
)
from student_lifecycle.utils.datetime import utc_now


class ClassRecord(Base, TimestampMixin, SoftDeleteMixin):
    """A class (rombongan belajar) with its capacity and occupancy.

    current_occupancy must equal the number of active enrollments that
    reference the class. It only changes through the class directory's
    version-checked update.
    """

    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_classes_capacity_non_negative"),
        CheckConstraint(
            "current_occupancy >= 0 AND current_occupancy <= capacity",
            name="ck_classes_occupancy_bounds",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    track: Mapped[str | None] = mapped_column(String(100), nullable=True)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False, index=True)
    homeroom_teacher: Mapped[str | None] = mapped_column(String(150), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_occupancy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def available_seats(self) -> int:
        """Seats left before the class is full."""
        return self.capacity - self.current_occupancy


class StudentRecord(Base, TimestampMixin):
    """A student known to the student directory."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    student_number: Mapped[str | None] = mapped_column(String(30), nullable=True, unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")


class EnrollmentRecord(Base, TimestampMixin):
    """Binding of one student to one class for one academic year.

    The partial unique index keeps at most one active row per student, also
    against writers in other processes sharing the store.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollments_student_status", "student_id", "status"),
        Index("ix_enrollments_class_status", "class_id", "status"),
        Index(
            "uq_enrollments_one_active_per_student",
            "student_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    assignment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    assigned_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class TransferRecord(Base):
    """Audit entry for one completed transfer. Never updated."""

    __tablename__ = "class_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    from_class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    to_class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    approved_by: Mapped[str] = mapped_column(String(150), nullable=False, default="")
    approved_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class ExitRecord(Base):
    """Audit entry for one student exit. Never updated."""

    __tablename__ = "student_exits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    exit_date: Mapped[date] = mapped_column(Date, nullable=False)
    exit_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    destination: Mapped[str | None] = mapped_column(String(200), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    approved_by: Mapped[str] = mapped_column(String(150), nullable=False, default="")
    approved_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    academic_year: Mapped[str] = mapped_column(String(9), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
