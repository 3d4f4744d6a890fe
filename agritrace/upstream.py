# agritrace/upstream.py
import logging
import requests
from typing import Dict, List, Optional

from agritrace.schemas import CollectionSnapshot
from agritrace.settings import settings

log = logging.getLogger(__name__)

COLLECTION_PATHS = {
    "certifications": "/api/certifications",
    "commodities": "/api/commodities",
    "reports": "/api/reports",
}


class UpstreamError(Exception):
    """Raised when the upstream AgriTrace API cannot supply a collection."""


def _get_json(url: str) -> List[Dict]:
    """
    GET a collection endpoint and return the decoded JSON array.
    """
    try:
        res = requests.get(url, headers={"Accept": "application/json"}, timeout=settings.UPSTREAM_TIMEOUT)
        res.raise_for_status()
        body = res.json()
    except (requests.RequestException, ValueError) as e:
        raise UpstreamError(f"Upstream fetch failed for {url}: {e}") from e

    if not isinstance(body, list):
        raise UpstreamError(f"Upstream returned {type(body).__name__} for {url}, expected a list")
    return body


def fetch_snapshot(base_url: Optional[str] = None) -> CollectionSnapshot:
    """
    Fetch certifications, commodities and reports from the upstream API
    and return them as one snapshot.
    """
    base_url = (base_url or settings.UPSTREAM_API_URL or "").rstrip("/")
    if not base_url:
        raise UpstreamError("UPSTREAM_API_URL is not configured")

    collections = {}
    for name, path in COLLECTION_PATHS.items():
        collections[name] = _get_json(f"{base_url}{path}")
        log.info("Fetched %d %s from %s", len(collections[name]), name, base_url)

    try:
        return CollectionSnapshot.model_validate(collections)
    except ValueError as e:
        raise UpstreamError(f"Upstream returned malformed records: {e}") from e
