"""JSON response shaping for portfolio tools."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, is_dataclass
from typing import Any

from portfolio_tracker.services.base import ServiceResult

DISCLAIMER = "Data is for informational purposes only and does not constitute financial advice."


def _convert_data(data: Any) -> Any:
    to_dict = getattr(data, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    if isinstance(data, (list, tuple)):
        return [_convert_data(item) for item in data]
    if isinstance(data, dict):
        return {key: _convert_data(value) for key, value in data.items()}
    return data


def success_response(data: Any, warning: str | None = None, **extra: Any) -> str:
    payload: dict[str, Any] = {"data": _convert_data(data), "timestamp": int(time.time())}
    payload.update({key: _convert_data(value) for key, value in extra.items()})
    if warning:
        payload["warning"] = warning
    return json.dumps(payload, ensure_ascii=True)


def result_response(result: ServiceResult[Any]) -> str:
    if result.error is not None:
        return error_response(result.error.code, result.error.message, retriable=result.error.retriable)
    fetched_at = result.fetched_at or time.time()
    return success_response(
        result.data,
        warning=result.warning,
        source=result.source or "unknown",
        data_freshness={"timestamp": int(fetched_at), "age_seconds": round(max(0.0, time.time() - fetched_at), 3)},
        disclaimer=DISCLAIMER,
    )


def error_response(code: str, message: str, **details: Any) -> str:
    payload: dict[str, Any] = {
        "error": True,
        "code": code,
        "message": message,
        "timestamp": int(time.time()),
    }
    payload.update({key: _convert_data(value) for key, value in details.items()})
    return json.dumps(payload, ensure_ascii=True)
