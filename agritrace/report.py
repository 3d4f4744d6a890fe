# agritrace/report.py
"""
Standalone HTML verification report.

The document carries its own inline stylesheet and references no external
resources so it can be opened offline after download. Only the generation
timestamp varies between two renders of the same result.
"""
import base64
import html
import io
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from urllib.parse import quote

import qrcode

from agritrace.schemas import VerificationResult
from agritrace.settings import settings


class ReportRenderError(ValueError):
    """Raised when a result cannot be rendered into a verification report."""


_STYLE = """
body { font-family: Arial, Helvetica, sans-serif; color: #1e293b; margin: 0; padding: 40px; background: #f8fafc; }
.page { max-width: 800px; margin: 0 auto; background: #ffffff; border: 1px solid #e2e8f0; border-radius: 8px; padding: 40px; }
.letterhead { text-align: center; border-bottom: 3px solid #15803d; padding-bottom: 20px; margin-bottom: 30px; }
.letterhead .org { font-size: 18px; font-weight: bold; color: #0f172a; }
.letterhead h1 { font-size: 24px; margin: 12px 0; letter-spacing: 1px; }
.badge { display: inline-block; padding: 6px 16px; border-radius: 999px; font-weight: bold; font-size: 13px; }
.badge-verified { background: #16a34a; color: #ffffff; }
.badge-status { background: #dcfce7; color: #166534; }
.panel { background: #f1f5f9; border-left: 4px solid #15803d; padding: 16px 20px; margin-bottom: 30px; }
.panel p { margin: 6px 0; }
.qr { float: right; width: 128px; height: 128px; margin-left: 16px; }
.grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px 32px; margin-bottom: 30px; }
.field .label { font-size: 12px; text-transform: uppercase; color: #64748b; }
.field .value { font-size: 15px; font-weight: bold; margin-top: 4px; }
.footer { border-top: 1px solid #e2e8f0; padding-top: 16px; font-size: 11px; color: #64748b; text-align: center; }
"""


def format_locale_date(value) -> str:
    """Render a date the way en-US ``toLocaleDateString`` does (M/D/YYYY)."""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return f"{value.month}/{value.day}/{value.year}"


def format_locale_datetime(value: datetime) -> str:
    """Render a timestamp the way en-US ``toLocaleString`` does."""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{format_locale_date(value)}, {hour}:{value.minute:02d}:{value.second:02d} {meridiem}"


def format_quantity(value) -> str:
    """Plain decimal without trailing zeros or exponent (500.0 -> "500")."""
    return format(Decimal(str(value)).normalize(), "f")


def verification_url(search_query: str) -> str:
    return f"{settings.VERIFY_BASE_URL.rstrip('/')}/{quote(search_query.strip(), safe='')}"


def verification_qr_data_uri(url: str) -> str:
    """PNG QR code of `url`, inlined as a data URI."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=1,
    )
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def _esc(value) -> str:
    return html.escape(str(value))


def _required(record, attr: str):
    value = getattr(record, attr, None)
    if value is None or value == "":
        raise ReportRenderError(f"{type(record).__name__} is missing required field '{attr}'")
    return value


def _certificate_fields(data) -> List[Tuple[str, str]]:
    commodity = getattr(data, "commodity", None)
    return [
        ("Certificate Number", _required(data, "certificate_number")),
        ("Certificate Type", str(_required(data, "certificate_type")).replace("_", " ").title()),
        ("Exporter Name", getattr(data, "exporter_name", None) or "N/A"),
        ("Commodity", commodity.name if commodity is not None else "N/A"),
        ("Issued Date", format_locale_date(_required(data, "issued_date"))),
        ("Expiry Date", format_locale_date(_required(data, "expiry_date"))),
        ("Status", _required(data, "status")),
        ("Certification Body", _required(data, "certification_body")),
    ]


def _commodity_fields(data) -> List[Tuple[str, str]]:
    return [
        ("Batch Number", _required(data, "batch_number")),
        ("Commodity Name", _required(data, "name")),
        ("Type", _required(data, "type")),
        ("Quality Grade", _required(data, "quality_grade")),
        ("County", _required(data, "county")),
        ("Quantity", f"{format_quantity(_required(data, 'quantity'))} {_required(data, 'unit')}"),
        ("Status", _required(data, "status")),
        ("Registered", format_locale_date(_required(data, "created_at"))),
    ]


def _report_fields(data) -> List[Tuple[str, str]]:
    return [
        ("Report ID", _required(data, "report_id")),
        ("Title", _required(data, "title")),
        ("Department", _required(data, "department")),
        ("Date Range", _required(data, "date_range")),
    ]


_FIELD_BUILDERS = {
    "certificate": _certificate_fields,
    "commodity": _commodity_fields,
    "report": _report_fields,
}


def render_verification_report(
    search_query: str, result: Optional[VerificationResult], generated_at: Optional[datetime] = None
) -> str:
    """
    Build the HTML document for a valid verification result.

    Raises ReportRenderError when the result is missing, not valid, or its
    record lacks a field the report prints.
    """
    if result is None or result.status != "valid" or result.data is None:
        raise ReportRenderError("only a valid verification result can be rendered")
    builder = _FIELD_BUILDERS.get(result.type)
    if builder is None:
        raise ReportRenderError(f"unsupported result type '{result.type}'")

    fields = builder(result.data)
    generated_at = generated_at or datetime.now()
    verify_link = verification_url(search_query)

    grid = "\n".join(
        f'      <div class="field"><div class="label">{_esc(label)}</div>'
        f'<div class="value">{_esc(value)}</div></div>'
        for label, value in fields
    )

    lines = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="utf-8">',
        f"  <title>Verification Report - {_esc(search_query)}</title>",
        f"  <style>{_STYLE}</style>",
        "</head>",
        "<body>",
        '  <div class="page">',
        '    <div class="letterhead">',
        f'      <div class="org">{_esc(settings.ORGANIZATION_NAME)}</div>',
        "      <h1>DOCUMENT VERIFICATION REPORT</h1>",
        '      <span class="badge badge-verified">VERIFIED AUTHENTIC</span>',
        "    </div>",
        '    <div class="panel">',
        f'      <img class="qr" alt="Verification QR code" src="{verification_qr_data_uri(verify_link)}">',
        f"      <p><strong>Reference Searched:</strong> {_esc(search_query)}</p>",
        f"      <p><strong>Document Type:</strong> {_esc(result.document_type)}</p>",
        f"      <p><strong>Verified At:</strong> {_esc(format_locale_datetime(result.verified_at))}</p>",
        f'      <p><strong>Verify Online:</strong> <a href="{_esc(verify_link)}">{_esc(verify_link)}</a></p>',
        f'      <p><strong>Status:</strong> <span class="badge badge-status">{_esc(result.status.upper())}</span></p>',
        "    </div>",
        '    <div class="grid">',
        grid,
        "    </div>",
        '    <div class="footer">',
        "      <p>This report was generated electronically and confirms that the referenced document"
        " exists in the official records at the time of verification.</p>",
        f"      <p>Generated: {_esc(format_locale_datetime(generated_at))}</p>",
        f"      <p>{_esc(settings.CONTACT_LINE)}</p>",
        "    </div>",
        "  </div>",
        "</body>",
        "</html>",
    ]
    return "\n".join(lines) + "\n"


def report_filename(search_query: str, on: Optional[date] = None) -> str:
    on = on or date.today()
    return f"verification-report-{search_query}-{on.isoformat()}.html"
