from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import DashboardFiltersModel, DashboardRequest, LoginRequest
from core.auth import AuthenticatedUser, authenticate
from core.config import get_settings
from core.data import load_dashboard_records, prepare_context
from core.errors import AuthError, ConfigError
from core.filters import DashboardFilters, normalize_filters
from core.metrics_dashboard import compute_dashboard
from core.sheets import download_sheet


app = FastAPI(title="Micropartner Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

SHEET_CACHE_CONTROL = "public, max-age=300, s-maxage=300, stale-while-revalidate=59"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _json(data: object, **kwargs) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        ),
        **kwargs,
    )


@app.get("/api/sheet")
def get_sheet(sheet: Optional[str] = Query(default=None)):
    if not get_settings().spreadsheet_id:
        return _error(500, "Google Sheet ID invalid or missing in configuration")
    if not sheet:
        return _error(400, "Sheet name required")
    try:
        records = download_sheet(sheet)
    except ConfigError:
        logger.exception("sheet config failed")
        return _error(500, "Google Sheet ID invalid or missing in configuration")
    except Exception:
        logger.exception("Error fetching sheet %r", sheet)
        return _error(500, "Failed to fetch data")
    return _json(records, headers={"Cache-Control": SHEET_CACHE_CONTROL})


@app.post("/api/login")
def login(body: LoginRequest):
    try:
        user = authenticate(body.id, body.password)
    except AuthError as exc:
        return _error(401, str(exc))
    return _json(user.to_dict())


@app.post("/api/dashboard")
def dashboard(body: DashboardRequest):
    # role and name come from the caller; rows are scoped for display, not authorization
    try:
        user = AuthenticatedUser.from_dict(body.user.model_dump())
        f = _filters_from_model(body.filters)
        records = load_dashboard_records(body.source)
        ctx = prepare_context(f, user, records)
        return _json(compute_dashboard(f, ctx, page=body.page))
    except Exception as exc:
        logger.exception("dashboard failed")
        return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})
