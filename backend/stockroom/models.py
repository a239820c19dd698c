import enum
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Boolean,
    Enum,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    JSON,
    Index,
    Date,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, object_session
from .db import Base


class UserRole(str, enum.Enum):
    admin = "admin"
    engineer = "engineer"


class EquipmentCategory(str, enum.Enum):
    power_tools = "power-tools"
    hand_tools = "hand-tools"
    safety_equipment = "safety-equipment"
    materials = "materials"
    machinery = "machinery"
    electronic = "electronic"
    other = "other"


class EquipmentUnit(str, enum.Enum):
    pieces = "pieces"
    packets = "packets"
    meters = "meters"
    kilograms = "kilograms"
    liters = "liters"
    boxes = "boxes"
    sets = "sets"


class EquipmentCondition(str, enum.Enum):
    new = "new"
    good = "good"
    fair = "fair"
    needs_repair = "needs_repair"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("partition", "username", name="uq_users_partition_username"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partition: Mapped[str] = mapped_column(String(64), index=True)
    username: Mapped[str] = mapped_column(String(50))
    name: Mapped[str] = mapped_column(String(120))
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Equipment(Base):
    __tablename__ = "equipment"
    __table_args__ = (
        UniqueConstraint("partition", "name", name="uq_equipment_partition_name"),
        CheckConstraint("quantity >= 0", name="ck_equipment_quantity_nonneg"),
        Index("idx_equipment_partition_created", "partition", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    partition: Mapped[str] = mapped_column(String(64))
    name: Mapped[str] = mapped_column(String(255))
    category: Mapped[EquipmentCategory] = mapped_column(Enum(EquipmentCategory, values_callable=_values))
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    unit: Mapped[EquipmentUnit] = mapped_column(Enum(EquipmentUnit, values_callable=_values))
    location: Mapped[str] = mapped_column(String(255), default="")
    condition: Mapped[EquipmentCondition] = mapped_column(Enum(EquipmentCondition, values_callable=_values))
    serial_number: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class Withdrawal(Base):
    __tablename__ = "withdrawals"
    __table_args__ = (Index("idx_withdrawals_partition_date", "partition", "withdrawal_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    partition: Mapped[str] = mapped_column(String(64))
    withdrawal_date: Mapped[date] = mapped_column(Date)
    engineer_name: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(Text, default="")
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    lines: Mapped[list["WithdrawalLine"]] = relationship(
        back_populates="withdrawal",
        cascade="all, delete-orphan",
        order_by="WithdrawalLine.position",
        lazy="selectin",
    )


class WithdrawalLine(Base):
    __tablename__ = "withdrawal_lines"
    __table_args__ = (CheckConstraint("quantity_withdrawn > 0", name="ck_withdrawal_line_qty_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    withdrawal_id: Mapped[int] = mapped_column(ForeignKey("withdrawals.id"))
    position: Mapped[int] = mapped_column(Integer)
    # snapshot, deliberately not a foreign key
    equipment_id: Mapped[int] = mapped_column(Integer)
    equipment_name: Mapped[str] = mapped_column(String(255))
    quantity_withdrawn: Mapped[int] = mapped_column(Integer)
    unit: Mapped[str] = mapped_column(String(32))

    withdrawal: Mapped[Withdrawal] = relationship(back_populates="lines")


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    partition: Mapped[str] = mapped_column(String(64), index=True)
    username: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    action: Mapped[str] = mapped_column(String(120))
    entity_type: Mapped[str] = mapped_column(String(120))
    entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payload_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)


class LedgerImmutableError(RuntimeError):
    pass


def _reject_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise LedgerImmutableError(f"{type(target).__name__} {target.id} is immutable")


def _reject_delete(mapper, connection, target):
    raise LedgerImmutableError(f"{type(target).__name__} {target.id} cannot be deleted")


for _ledger_cls in (Withdrawal, WithdrawalLine):
    event.listen(_ledger_cls, "before_update", _reject_update)
    event.listen(_ledger_cls, "before_delete", _reject_delete)
