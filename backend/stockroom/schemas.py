import enum
from datetime import datetime, date
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from .models import UserRole, EquipmentCategory, EquipmentUnit, EquipmentCondition


class LoginPayload(BaseModel):
    site: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminLoginPayload(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SignupPayload(LoginPayload):
    name: Optional[str] = None


class SessionOut(BaseModel):
    role: UserRole
    name: str
    username: str
    site: str

    class Config:
        from_attributes = True


class SessionEnvelope(BaseModel):
    user: Optional[SessionOut] = None


class EngineerBase(BaseModel):
    id: int
    username: str
    name: str
    role: UserRole
    partition: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class EngineerCreate(BaseModel):
    name: str = Field(min_length=1)
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)
    site_name: str = Field(min_length=1)


class EquipmentBase(BaseModel):
    id: int
    name: str
    category: EquipmentCategory
    quantity: int
    unit: EquipmentUnit
    location: str
    condition: EquipmentCondition
    serial_number: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class EquipmentUpsertResult(EquipmentBase):
    created: bool


def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name must not be blank")
    return v


class EquipmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: EquipmentCategory
    quantity: int = Field(ge=0, strict=True)
    unit: EquipmentUnit
    location: str = ""
    condition: EquipmentCondition
    serial_number: Optional[str] = None

    _strip_name = field_validator("name")(_clean_name)


class EquipmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[EquipmentCategory] = None
    quantity: Optional[int] = Field(None, ge=0, strict=True)
    unit: Optional[EquipmentUnit] = None
    location: Optional[str] = None
    condition: Optional[EquipmentCondition] = None
    serial_number: Optional[str] = None

    _strip_name = field_validator("name")(_clean_name)


class WithdrawalItemCreate(BaseModel):
    equipment_id: int = Field(strict=True)
    quantity_withdrawn: int = Field(gt=0, strict=True)


class WithdrawalCreate(BaseModel):
    withdrawal_date: date
    description: str = ""
    notes: Optional[str] = None
    items: List[WithdrawalItemCreate] = Field(min_length=1)


class WithdrawalCreated(BaseModel):
    id: int


class WithdrawalLineBase(BaseModel):
    equipment_id: int
    equipment_name: str
    quantity_withdrawn: int
    unit: str

    class Config:
        from_attributes = True


class WithdrawalBase(BaseModel):
    id: int
    withdrawal_date: date
    engineer_name: str
    description: str
    notes: str
    created_at: datetime
    lines: List[WithdrawalLineBase] = []

    class Config:
        from_attributes = True


class ReportType(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"


class EquipmentUsage(BaseModel):
    equipment_name: str
    quantity_withdrawn: int
    unit: str
    engineers: List[str]


class DailyReport(BaseModel):
    report_date: date
    site_name: str
    total_withdrawals: int
    equipment_used: List[EquipmentUsage]


class WeeklyReport(BaseModel):
    week_start_date: date
    week_end_date: date
    site_name: str
    total_withdrawals: int


class DashboardStats(BaseModel):
    total_engineers: int
    total_equipment: int
    total_withdrawals: int
    low_stock_items: int


class AuditEntry(BaseModel):
    id: int
    username: Optional[str]
    action: str
    entity_type: str
    entity_id: Optional[int]
    payload_json: Optional[dict]
    created_at: datetime

    class Config:
        from_attributes = True
