"""Reading FHIR input (files or a FHIR server) and writing HL7 output."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .utils import safe_for_filename

logger = logging.getLogger(__name__)


def read_ndjson(path: str | Path) -> List[Dict[str, Any]]:
    objs: List[Dict[str, Any]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                objs.append(json.loads(line))
    return objs


def read_fhir_file(path: str | Path) -> List[Any]:
    """One conversion input per returned item.

    ``.ndjson`` files hold one Bundle/resource per line; anything else is a
    single JSON document.
    """
    p = Path(path)
    if p.suffix.lower() == ".ndjson":
        return read_ndjson(p)
    return [json.loads(p.read_text(encoding="utf-8"))]


def fetch_bundle(
    base_url: str,
    path: str,
    token: Optional[str] = None,
    *,
    session: Optional[requests.Session] = None,
    timeout: int = 60,
) -> Dict[str, Any]:
    """GET a FHIR Bundle, e.g. path='Patient/123/$everything'."""
    headers = {"Accept": "application/fhir+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    url = base_url.rstrip("/") + "/" + path.lstrip("/")
    logger.info("Fetching FHIR resources from %s", url)
    r = (session or requests).get(url, headers=headers, timeout=timeout)
    r.raise_for_status()
    return r.json()


def write_hl7(messages: List[str], out_dir: str | Path, stem: str) -> List[str]:
    """Write each message to ``<out_dir>/<stem>_<n>.hl7``; returns the paths."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: List[str] = []
    for i, msg in enumerate(messages, start=1):
        p = out / f"{safe_for_filename(stem)}_{i}.hl7"
        p.write_text(msg, encoding="utf-8", newline="")
        written.append(str(p))
    return written
