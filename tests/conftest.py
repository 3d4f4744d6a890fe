"""Shared test fixtures for the verification service test suite."""

import os
from datetime import date, datetime

import pytest
from unittest.mock import patch

# Ensure test environment variables are set before any settings import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["VERIFY_DELAY_MS"] = "0"
os.environ.pop("UPSTREAM_API_URL", None)

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import agritrace.models  # noqa: F401  (registers tables)
from agritrace.schemas import CertificationRead, CollectionSnapshot, CommodityRead, ReportRead


@pytest.fixture
def coffee_certificate():
    return CertificationRead(
        id=1,
        certificate_number="EXP-CERT-2024-001",
        certificate_type="export",
        exporter_name="Acme Exports",
        commodity_id=1,
        status="active",
        issued_date=date(2024, 1, 1),
        expiry_date=date(2025, 1, 1),
        certification_body="LACRA",
    )


@pytest.fixture
def coffee_batch():
    return CommodityRead(
        id=1,
        batch_number="COF-2024-001",
        name="Coffee Batch 1",
        type="coffee",
        quality_grade="A",
        county="Lofa",
        quantity=500,
        unit="kg",
        status="registered",
        created_at=datetime(2024, 1, 1),
    )


@pytest.fixture
def county_report():
    return ReportRead(
        id=1,
        report_id="RPT-2024-LOFA",
        title="Lofa County Export Compliance",
        department="Compliance & Inspection",
        date_range="2024-01-01 to 2024-03-31",
    )


@pytest.fixture
def snapshot(coffee_certificate, coffee_batch, county_report):
    """The collections of the end-to-end verification scenario."""
    return CollectionSnapshot(
        certifications=[coffee_certificate],
        commodities=[coffee_batch],
        reports=[county_report],
    )


@pytest.fixture
def test_engine():
    """A fresh in-memory database swapped in for the module engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with patch("agritrace.crud.engine", engine):
        yield engine
    engine.dispose()
