# agritrace/main.py
import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from agritrace import crud
from agritrace.crud import (
    init_db,
    create_certification,
    create_commodity,
    create_report,
    get_certification,
    get_commodity,
    list_certifications,
    list_commodities,
    list_reports,
)
from agritrace.report import ReportRenderError, render_verification_report, report_filename, verification_url
from agritrace.resolver import SEARCH_REQUIRED, VERIFICATION_FAILED, SearchSession, resolve
from agritrace.schemas import (
    CertificationIn,
    CertificationRead,
    CollectionSnapshot,
    CommodityIn,
    CommodityRead,
    HealthResponse,
    ReportIn,
    ReportRead,
    VerifyIn,
    VerifyOut,
)
from agritrace.settings import settings
from agritrace.tasks import scheduler
from agritrace.upstream import UpstreamError, fetch_snapshot

log = logging.getLogger(__name__)

app = FastAPI(title="AgriTrace360 Document Verification")


@app.on_event("startup")
def startup():
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    try:
        scheduler.start()
    except Exception:
        # scheduler is already running after a dev reload
        log.warning("Expiry scheduler did not start", exc_info=True)


@app.on_event("shutdown")
def shutdown():
    if scheduler.running:
        scheduler.shutdown(wait=False)


def _load_snapshot() -> CollectionSnapshot:
    """Collections come from the upstream API when configured, else the local database."""
    if settings.UPSTREAM_API_URL:
        try:
            return fetch_snapshot(settings.UPSTREAM_API_URL)
        except UpstreamError as e:
            log.error("Snapshot fetch failed: %s", e)
            raise HTTPException(status_code=502, detail=str(e))
    return crud.load_snapshot()


def _duplicate(e: IntegrityError, what: str) -> HTTPException:
    log.info("Rejected duplicate %s: %s", what, e.orig)
    return HTTPException(status_code=409, detail=f"{what} already exists")


# ---------- Commodities ----------
@app.get("/api/commodities", response_model=List[CommodityRead])
def get_commodities(county: Optional[str] = None, type: Optional[str] = None):
    return list_commodities(county=county, type=type)


@app.get("/api/commodities/{commodity_id}", response_model=CommodityRead)
def get_commodity_endpoint(commodity_id: int):
    com = get_commodity(commodity_id)
    if com is None:
        raise HTTPException(status_code=404, detail="Commodity not found")
    return com


@app.post("/api/commodities", response_model=CommodityRead, status_code=201)
def create_commodity_endpoint(data: CommodityIn):
    try:
        return create_commodity(data.model_dump())
    except IntegrityError as e:
        raise _duplicate(e, f"Commodity batch {data.batch_number}")


# ---------- Certifications ----------
@app.get("/api/certifications", response_model=List[CertificationRead])
def get_certifications(commodityId: Optional[int] = None):
    return list_certifications(commodity_id=commodityId)


@app.get("/api/certifications/{certification_id}", response_model=CertificationRead)
def get_certification_endpoint(certification_id: int):
    cert = get_certification(certification_id)
    if cert is None:
        raise HTTPException(status_code=404, detail="Certification not found")
    return cert


@app.post("/api/certifications", response_model=CertificationRead, status_code=201)
def create_certification_endpoint(data: CertificationIn):
    if get_commodity(data.commodity_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown commodityId {data.commodity_id}")
    try:
        return create_certification(data.model_dump())
    except IntegrityError as e:
        raise _duplicate(e, f"Certificate {data.certificate_number}")


# ---------- Reports ----------
@app.get("/api/reports", response_model=List[ReportRead])
def get_reports():
    return list_reports()


@app.post("/api/reports", response_model=ReportRead, status_code=201)
def create_report_endpoint(data: ReportIn):
    try:
        return create_report(data.model_dump())
    except IntegrityError as e:
        raise _duplicate(e, f"Report {data.report_id}")


# ---------- Verification ----------
@app.post("/api/verify", response_model=VerifyOut)
async def verify(payload: VerifyIn):
    """
    Resolve a reference code against certifications, commodities and reports.
    An empty query is rejected before any collection is loaded.
    """
    session = SearchSession(payload.query)
    if not payload.query.strip():
        raise HTTPException(status_code=400, detail=SEARCH_REQUIRED.model_dump(by_alias=True))

    snapshot = await run_in_threadpool(_load_snapshot)
    result = await session.search(snapshot)
    return VerifyOut(
        result=result,
        notification=session.notifications[-1],
        verification_url=verification_url(payload.query) if result.status == "valid" else None,
    )


@app.get("/api/verify/{query:path}/report", response_class=HTMLResponse)
def download_report(query: str):
    """
    Re-resolve `query` and return the verification report as an HTML attachment.
    """
    if not query.strip():
        raise HTTPException(status_code=400, detail=SEARCH_REQUIRED.model_dump(by_alias=True))

    result = resolve(query, _load_snapshot())
    if result.status != "valid":
        raise HTTPException(status_code=404, detail=VERIFICATION_FAILED.model_dump(by_alias=True))

    try:
        body = render_verification_report(query, result)
    except ReportRenderError as e:
        log.error("Report rendering failed for %r: %s", query, e)
        raise HTTPException(status_code=500, detail=str(e))

    filename = report_filename(query)
    return HTMLResponse(
        content=body,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename, safe='')}"},
    )


@app.get("/api/health", response_model=HealthResponse)
def health():
    db_ok = False
    try:
        with Session(crud.engine) as s:
            s.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        log.warning("Database health check failed", exc_info=True)

    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        database_connected=db_ok,
        snapshot_source="upstream" if settings.UPSTREAM_API_URL else "database",
    )
