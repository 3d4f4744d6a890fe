"""Tests for the HTML verification report."""

import base64
import re
from datetime import date, datetime

import pytest

from agritrace.report import (
    ReportRenderError,
    format_locale_date,
    format_locale_datetime,
    format_quantity,
    render_verification_report,
    report_filename,
    verification_url,
)
from agritrace.resolver import resolve
from agritrace.schemas import CertificationRead, CollectionSnapshot, VerificationResult


GENERATED = datetime(2024, 5, 2, 14, 30, 5)


class TestLocaleFormatting:
    def test_date(self):
        assert format_locale_date(date(2024, 1, 9)) == "1/9/2024"

    def test_iso_string(self):
        assert format_locale_date("2025-01-01") == "1/1/2025"

    def test_afternoon_timestamp(self):
        assert format_locale_datetime(GENERATED) == "5/2/2024, 2:30:05 PM"

    def test_midnight_timestamp(self):
        assert format_locale_datetime(datetime(2024, 1, 1, 0, 5, 0)) == "1/1/2024, 12:05:00 AM"


class TestCertificateReport:
    def test_contains_letterhead_and_fields(self, snapshot):
        body = render_verification_report("EXP-CERT-2024-001", resolve("EXP-CERT-2024-001", snapshot))
        assert body.startswith("<!DOCTYPE html>")
        assert "DOCUMENT VERIFICATION REPORT" in body
        assert "VERIFIED AUTHENTIC" in body
        assert "EXP-CERT-2024-001" in body
        assert "Export Certificate" in body
        assert "Acme Exports" in body
        assert "Coffee Batch 1" in body
        assert "1/1/2024" in body
        assert "1/1/2025" in body
        assert "LACRA" in body

    def test_joined_commodity_name(self):
        snap = CollectionSnapshot.model_validate(
            {
                "certifications": [
                    {
                        "id": 3,
                        "certificateNumber": "QC-7",
                        "certificateType": "quality",
                        "exporterName": "Nimba Cocoa Ltd",
                        "commodityId": 7,
                        "issuedDate": "2024-01-01",
                        "expiryDate": "2024-12-31",
                        "certificationBody": "LACRA",
                    }
                ],
                "commodities": [
                    {
                        "id": 7,
                        "batchNumber": "CCA-7",
                        "name": "Cocoa Batch A",
                        "type": "cocoa",
                        "qualityGrade": "A",
                        "county": "Nimba",
                        "quantity": 40,
                        "unit": "bags",
                    }
                ],
            }
        )
        assert "Cocoa Batch A" in render_verification_report("QC-7", resolve("QC-7", snap))

    def test_missing_commodity_renders_na(self, coffee_certificate):
        snap = CollectionSnapshot(certifications=[coffee_certificate])
        body = render_verification_report("EXP-CERT-2024-001", resolve("EXP-CERT-2024-001", snap))
        assert "N/A" in body

    def test_data_fields_are_stable_across_renders(self, snapshot):
        result = resolve("EXP-CERT-2024-001", snapshot)
        first = render_verification_report("EXP-CERT-2024-001", result, generated_at=GENERATED)
        second = render_verification_report("EXP-CERT-2024-001", result, generated_at=GENERATED)
        assert first == second


class TestOtherReports:
    def test_commodity_fields(self, snapshot):
        body = render_verification_report("cof-2024-001", resolve("cof-2024-001", snapshot))
        assert "Commodity Batch" in body
        assert "500 kg" in body
        assert "Lofa" in body
        assert "registered" in body
        assert "cof-2024-001" in body

    def test_large_quantity_is_printed_in_full(self, coffee_batch):
        batch = coffee_batch.model_copy(update={"quantity": 1500000.0})
        body = render_verification_report("COF-2024-001", resolve("COF-2024-001", CollectionSnapshot(commodities=[batch])))
        assert "1500000 kg" in body
        assert "e+06" not in body

    def test_report_fields(self, snapshot):
        body = render_verification_report("RPT-2024-LOFA", resolve("RPT-2024-LOFA", snapshot))
        assert "Lofa County Export Compliance" in body
        assert "Compliance &amp; Inspection" in body
        assert "2024-01-01 to 2024-03-31" in body

    def test_no_external_resources(self, snapshot):
        body = render_verification_report("RPT-2024-LOFA", resolve("RPT-2024-LOFA", snapshot))
        assert "<style>" in body
        assert "<link" not in body
        assert "<script" not in body

    def test_query_is_escaped(self, snapshot):
        result = resolve("RPT-2024-LOFA", snapshot)
        body = render_verification_report("<b>RPT-2024-LOFA</b>", result)
        assert "<b>RPT" not in body
        assert "&lt;b&gt;RPT-2024-LOFA&lt;/b&gt;" in body


class TestVerificationLink:
    def test_qr_code_is_inlined_png(self, snapshot):
        body = render_verification_report("EXP-CERT-2024-001", resolve("EXP-CERT-2024-001", snapshot))
        match = re.search(r'<img class="qr"[^>]*src="data:image/png;base64,([A-Za-z0-9+/=]+)"', body)
        assert match is not None
        assert base64.b64decode(match.group(1)).startswith(b"\x89PNG")

    def test_link_in_report(self, snapshot):
        body = render_verification_report("EXP-CERT-2024-001", resolve("EXP-CERT-2024-001", snapshot))
        assert 'href="https://lacra.gov.lr/verify/EXP-CERT-2024-001"' in body

    def test_url_is_percent_encoded(self):
        assert verification_url(" EXP CERT?1#a/b ") == "https://lacra.gov.lr/verify/EXP%20CERT%3F1%23a%2Fb"


class TestRenderErrors:
    def test_not_found_result_is_rejected(self, snapshot):
        with pytest.raises(ReportRenderError):
            render_verification_report("NOPE", resolve("NOPE", snapshot))

    def test_none_result_is_rejected(self):
        with pytest.raises(ReportRenderError):
            render_verification_report("NOPE", None)

    def test_missing_exporter_renders_na(self, coffee_certificate):
        cert = coffee_certificate.model_copy(update={"exporter_name": None})
        result = resolve("EXP-CERT-2024-001", CollectionSnapshot(certifications=[cert]))
        body = render_verification_report("EXP-CERT-2024-001", result)
        assert "Exporter Name</div><div class=\"value\">N/A" in body

    def test_missing_field_fails_loudly(self, snapshot):
        result = resolve("EXP-CERT-2024-001", snapshot)
        result = result.model_copy(update={"data": result.data.model_copy(update={"certification_body": None})})
        with pytest.raises(ReportRenderError, match="certification_body"):
            render_verification_report("EXP-CERT-2024-001", result)

    def test_malformed_record_fails_loudly(self):
        result = VerificationResult.model_construct(
            type="certificate",
            status="valid",
            data=CertificationRead.model_construct(certificate_number="X"),
            verified_at=GENERATED,
            document_type="Export Certificate",
        )
        with pytest.raises(ReportRenderError):
            render_verification_report("X", result)


@pytest.mark.parametrize(
    "value, expected",
    [(500.0, "500"), (1500000.0, "1500000"), (1234567.89, "1234567.89"), (2.5, "2.5"), (0, "0")],
)
def test_format_quantity(value, expected):
    assert format_quantity(value) == expected


def test_report_filename():
    assert report_filename("COF-2024-001", date(2024, 5, 2)) == "verification-report-COF-2024-001-2024-05-02.html"
