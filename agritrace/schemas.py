# agritrace/schemas.py
from datetime import date, datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use the camelCase keys of the AgriTrace REST API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------- Records ----------
class CommodityIn(CamelModel):
    batch_number: str
    name: str
    type: str
    quality_grade: str
    county: str
    quantity: float
    unit: str
    status: str = "pending"


class CommodityRead(CommodityIn):
    id: int
    created_at: Optional[datetime] = None


class CertificationIn(CamelModel):
    certificate_number: str
    certificate_type: str
    exporter_name: Optional[str] = None
    commodity_id: int
    status: Literal["active", "expired", "revoked", "pending"] = "active"
    issued_date: date
    expiry_date: date
    certification_body: str

    @field_validator("issued_date", "expiry_date", mode="before")
    @classmethod
    def timestamp_to_date(cls, value):
        # the platform API stores these as timestamps ("2024-01-01T10:30:00.000Z")
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value

    @model_validator(mode="after")
    def check_validity_window(self):
        if self.expiry_date < self.issued_date:
            raise ValueError("expiryDate must not be earlier than issuedDate")
        return self


class CertificationRead(CertificationIn):
    id: int


class ReportIn(CamelModel):
    report_id: str
    title: str
    department: str
    date_range: str


class ReportRead(ReportIn):
    id: int


class CertificateMatch(CertificationRead):
    """A matched certification joined to its commodity (None when the join misses)."""

    commodity: Optional[CommodityRead] = None


class CollectionSnapshot(CamelModel):
    certifications: List[CertificationRead] = []
    commodities: List[CommodityRead] = []
    reports: List[ReportRead] = []


# ---------- Verification ----------
ResultType = Literal["certificate", "commodity", "report", "not_found"]


class VerificationResult(CamelModel):
    type: ResultType
    status: Literal["valid", "invalid"]
    data: Union[CertificateMatch, CommodityRead, ReportRead, None] = None
    verified_at: datetime
    document_type: str


class Notification(CamelModel):
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class VerifyIn(CamelModel):
    query: str


class VerifyOut(CamelModel):
    result: VerificationResult
    notification: Notification
    verification_url: Optional[str] = None


class HealthResponse(CamelModel):
    status: str
    database_connected: bool
    snapshot_source: str
