# agritrace/resolver.py
"""
Reference resolution: match a free-text reference code against the
certification, commodity and report collections.
"""
import asyncio
import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional

from agritrace.report import render_verification_report, report_filename
from agritrace.schemas import (
    CertificateMatch,
    CertificationRead,
    CollectionSnapshot,
    CommodityRead,
    Notification,
    VerificationResult,
)
from agritrace.settings import settings

log = logging.getLogger(__name__)

SEARCH_REQUIRED = Notification(
    title="Search Required",
    description="Please enter a certificate number, batch code, or reference number.",
    variant="destructive",
)
VERIFICATION_FAILED = Notification(
    title="Verification Failed",
    description="No document found with the provided reference number.",
    variant="destructive",
)


class EmptyQueryError(ValueError):
    """Raised when the reference code is empty or whitespace only."""


class SearchInProgressError(RuntimeError):
    """Raised when a session is asked to search while a search is in flight."""


def normalize_query(query: str) -> str:
    return (query or "").strip().upper()


def document_type_label(result_type: str, certificate_type: Optional[str] = None) -> str:
    if result_type == "certificate":
        return f"{(certificate_type or '').replace('_', ' ').title()} Certificate".strip()
    if result_type == "commodity":
        return "Commodity Batch"
    if result_type == "report":
        return "Compliance Report"
    return "Unknown"


def _join_commodity(cert: CertificationRead, commodities: List[CommodityRead]) -> Optional[CommodityRead]:
    # first match in list order wins if ids are ever duplicated
    return next((c for c in commodities if c.id == cert.commodity_id), None)


def _match_certification(
    normalized: str, certifications: List[CertificationRead], match_exporter: bool
) -> Optional[CertificationRead]:
    for cert in certifications:
        if cert.certificate_number.upper() == normalized:
            return cert
        if match_exporter and cert.exporter_name and cert.exporter_name.upper() == normalized:
            shared = Counter((c.exporter_name or "").upper() for c in certifications)[normalized]
            if shared > 1:
                log.warning(
                    "Exporter name %r is shared by %d certifications; returning %s",
                    cert.exporter_name, shared, cert.certificate_number,
                )
            return cert
    return None


def resolve(query: str, snapshot: CollectionSnapshot, match_exporter: Optional[bool] = None) -> VerificationResult:
    """
    Resolve `query` against the snapshot. Certifications are searched first,
    then commodities, then reports; the first match wins. The snapshot is
    never modified.
    """
    normalized = normalize_query(query)
    if not normalized:
        raise EmptyQueryError("query must not be empty")
    if match_exporter is None:
        match_exporter = settings.MATCH_EXPORTER_NAME

    cert = _match_certification(normalized, snapshot.certifications, match_exporter)
    if cert is not None:
        data = CertificateMatch(
            **cert.model_dump(),
            commodity=_join_commodity(cert, snapshot.commodities),
        )
        log.info("Resolved %r to certificate %s", query, cert.certificate_number)
        return VerificationResult(
            type="certificate",
            status="valid",
            data=data,
            verified_at=datetime.now(),
            document_type=document_type_label("certificate", cert.certificate_type),
        )

    commodity = next((c for c in snapshot.commodities if c.batch_number.upper() == normalized), None)
    if commodity is not None:
        log.info("Resolved %r to commodity batch %s", query, commodity.batch_number)
        return VerificationResult(
            type="commodity",
            status="valid",
            data=commodity,
            verified_at=datetime.now(),
            document_type=document_type_label("commodity"),
        )

    report = next((r for r in snapshot.reports if r.report_id.upper() == normalized), None)
    if report is not None:
        log.info("Resolved %r to report %s", query, report.report_id)
        return VerificationResult(
            type="report",
            status="valid",
            data=report,
            verified_at=datetime.now(),
            document_type=document_type_label("report"),
        )

    log.info("No document matches %r", query)
    return VerificationResult(
        type="not_found",
        status="invalid",
        data=None,
        verified_at=datetime.now(),
        document_type="Unknown",
    )


def notification_for(result: VerificationResult) -> Notification:
    if result.status == "valid":
        return Notification(
            title="Document Verified",
            description=f"{result.document_type} has been successfully verified.",
        )
    return VERIFICATION_FAILED


class SearchSession:
    """
    State of one verification screen: the search text, the latest result and
    the notifications shown to the user.
    """

    def __init__(self, search_query: str = "", delay_ms: Optional[int] = None):
        self.search_query = search_query
        self.result: Optional[VerificationResult] = None
        self.has_searched = False
        self.is_verifying = False
        self.notifications: List[Notification] = []
        self.delay_ms = settings.VERIFY_DELAY_MS if delay_ms is None else delay_ms

    async def search(self, snapshot: CollectionSnapshot) -> Optional[VerificationResult]:
        if self.is_verifying:
            raise SearchInProgressError("a verification is already running")
        if not self.search_query.strip():
            self.notifications.append(SEARCH_REQUIRED)
            return None

        self.is_verifying = True
        try:
            if self.delay_ms:
                await asyncio.sleep(self.delay_ms / 1000)
            self.result = resolve(self.search_query, snapshot)
        finally:
            self.is_verifying = False

        self.has_searched = True
        self.notifications.append(notification_for(self.result))
        return self.result

    def reset(self):
        self.search_query = ""
        self.result = None
        self.has_searched = False
        self.notifications = []

    def download_report(self, on=None):
        """Return (filename, html) for the current valid result."""
        html_doc = render_verification_report(self.search_query, self.result)
        return report_filename(self.search_query, on), html_doc
