# agritrace/models.py
from typing import Optional
from datetime import date, datetime, timezone
from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Commodity(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    batch_number: str = Field(index=True, unique=True)
    name: str
    type: str
    quality_grade: str
    county: str
    quantity: float
    unit: str
    status: str = "pending"
    created_at: datetime = Field(default_factory=utc_now)


class Certification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    certificate_number: str = Field(index=True, unique=True)
    certificate_type: str
    exporter_name: str | None = None
    commodity_id: int = Field(foreign_key="commodity.id")
    status: str = "active"
    issued_date: date
    expiry_date: date
    certification_body: str
    created_at: datetime = Field(default_factory=utc_now)


class Report(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    report_id: str = Field(index=True, unique=True)
    title: str
    department: str
    date_range: str
    created_at: datetime = Field(default_factory=utc_now)
