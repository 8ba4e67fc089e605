"""SQLAlchemy ORM models for buildings, meters, bills and usage readings."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    org_id: Mapped[UUID] = mapped_column(index=True)
    name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(200), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    registry_property_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    registry_property_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    alternate_addresses: Mapped[list[AlternateAddress]] = relationship(
        back_populates="building", cascade="all, delete-orphan", lazy="selectin"
    )


class AlternateAddress(Base):
    __tablename__ = "building_alternate_addresses"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    building_id: Mapped[UUID] = mapped_column(ForeignKey("buildings.id", ondelete="CASCADE"), index=True)
    address: Mapped[str] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    building: Mapped[Building] = relationship(back_populates="alternate_addresses")


class Meter(Base):
    __tablename__ = "meters"
    __table_args__ = (
        UniqueConstraint("building_id", "utility", "label", name="uq_meters_building_utility_label"),
        # NULL labels never collide under the constraint above, so the single
        # default meter per building/utility needs its own partial index.
        Index(
            "uq_meters_default_per_building",
            "building_id",
            "utility",
            unique=True,
            postgresql_where=text("label IS NULL"),
            sqlite_where=text("label IS NULL"),
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    building_id: Mapped[UUID] = mapped_column(ForeignKey("buildings.id", ondelete="CASCADE"), index=True)
    utility: Mapped[str] = mapped_column(String(20))  # electric, gas
    label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider: Mapped[str | None] = mapped_column(String(200), nullable=True)
    registry_meter_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class BillUpload(Base):
    __tablename__ = "bill_uploads"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    file_hash: Mapped[str] = mapped_column(String(64), index=True)
    filename: Mapped[str] = mapped_column(String(512))
    vendor: Mapped[str] = mapped_column(String(50))
    classification_method: Mapped[str] = mapped_column(String(20))
    item_count: Mapped[int] = mapped_column(Integer, default=0)
    result_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Bill(Base):
    __tablename__ = "bills"
    __table_args__ = (
        UniqueConstraint("meter_id", "period_start", "period_end", name="uq_bills_natural_key"),
        CheckConstraint("period_end >= period_start", name="ck_bills_period_order"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    building_id: Mapped[UUID] = mapped_column(ForeignKey("buildings.id", ondelete="CASCADE"), index=True)
    meter_id: Mapped[UUID] = mapped_column(ForeignKey("meters.id", ondelete="CASCADE"), index=True)
    period_start: Mapped[date] = mapped_column(Date)
    period_end: Mapped[date] = mapped_column(Date)
    total_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    demand_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    utility_provider: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bill_upload_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)  # bill_uploads.id when known
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UsageReading(Base):
    __tablename__ = "usage_readings"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    bill_id: Mapped[UUID] = mapped_column(ForeignKey("bills.id", ondelete="CASCADE"), unique=True)
    usage_kwh: Mapped[float | None] = mapped_column(Float, nullable=True)
    usage_mcf: Mapped[float | None] = mapped_column(Float, nullable=True)
    usage_mmbtu: Mapped[float | None] = mapped_column(Float, nullable=True)
    therms: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
