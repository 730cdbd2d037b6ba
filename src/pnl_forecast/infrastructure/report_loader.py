"""Load profit-and-loss report payloads from disk."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

from pnl_forecast.domain.services.normalizer import ReportFormatError


def load_report(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a report JSON file, unwrapping a top-level ``report`` key if present."""
    source = Path(path)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ReportFormatError(f"{source} is not valid JSON: {exc}") from exc

    if isinstance(payload, dict) and isinstance(payload.get("report"), dict):
        payload = payload["report"]
    if not isinstance(payload, dict):
        raise ReportFormatError(f"{source} does not contain a report object")
    return payload


def entity_id_for(path: Union[str, Path]) -> str:
    """Default cache identity for a report file."""
    return Path(path).stem
