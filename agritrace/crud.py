# agritrace/crud.py

from typing import List, Optional
from datetime import date

from sqlmodel import SQLModel, Session, select, create_engine
from agritrace.models import Certification, Commodity, Report
from agritrace.schemas import CertificationRead, CollectionSnapshot, CommodityRead, ReportRead
from agritrace.settings import settings


# ---------- Database Setup ----------
engine = create_engine(settings.DATABASE_URL, echo=False)


def init_db():
    """Initialize all SQLModel tables."""
    SQLModel.metadata.create_all(engine)


# ---------- COMMODITY CRUD ----------
def create_commodity(obj: dict) -> Commodity:
    """Register a new commodity batch."""
    with Session(engine) as s:
        com = Commodity(**obj)
        s.add(com)
        s.commit()
        s.refresh(com)
        return com


def get_commodity(commodity_id: int) -> Optional[Commodity]:
    with Session(engine) as s:
        return s.get(Commodity, commodity_id)


def list_commodities(county: Optional[str] = None, type: Optional[str] = None) -> List[Commodity]:
    """List commodities, optionally filtered by county and/or commodity type."""
    with Session(engine) as s:
        q = select(Commodity)
        if county:
            q = q.where(Commodity.county == county)
        if type:
            q = q.where(Commodity.type == type)
        return s.exec(q.order_by(Commodity.id)).all()


# ---------- CERTIFICATION CRUD ----------
def create_certification(obj: dict) -> Certification:
    """Store a newly issued certification."""
    with Session(engine) as s:
        cert = Certification(**obj)
        s.add(cert)
        s.commit()
        s.refresh(cert)
        return cert


def get_certification(certification_id: int) -> Optional[Certification]:
    with Session(engine) as s:
        return s.get(Certification, certification_id)


def list_certifications(commodity_id: Optional[int] = None) -> List[Certification]:
    with Session(engine) as s:
        q = select(Certification)
        if commodity_id is not None:
            q = q.where(Certification.commodity_id == commodity_id)
        return s.exec(q.order_by(Certification.id)).all()


def get_active_certifications() -> List[Certification]:
    """Get all certifications still marked active."""
    with Session(engine) as s:
        q = select(Certification).where(Certification.status == "active")
        return s.exec(q).all()


# ---------- REPORT CRUD ----------
def create_report(obj: dict) -> Report:
    with Session(engine) as s:
        rep = Report(**obj)
        s.add(rep)
        s.commit()
        s.refresh(rep)
        return rep


def list_reports() -> List[Report]:
    with Session(engine) as s:
        return s.exec(select(Report).order_by(Report.id)).all()


# ---------- SNAPSHOT ----------
def load_snapshot() -> CollectionSnapshot:
    """Read all three collections, in id order, as wire models."""
    return CollectionSnapshot(
        certifications=[CertificationRead.model_validate(c) for c in list_certifications()],
        commodities=[CommodityRead.model_validate(c) for c in list_commodities()],
        reports=[ReportRead.model_validate(r) for r in list_reports()],
    )


# ---------- UTILITY ----------
def expire_certifications(today: Optional[date] = None) -> int:
    """Mark every active certification past its expiry date as expired (for scheduler)."""
    today = today or date.today()
    with Session(engine) as s:
        q = select(Certification).where(
            Certification.expiry_date < today,
            Certification.status == "active",
        )
        expired = s.exec(q).all()
        for c in expired:
            c.status = "expired"
            s.add(c)
        s.commit()
        return len(expired)
