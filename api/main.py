from __future__ import annotations

import logging
import math
from datetime import timedelta
from functools import lru_cache
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import DataType, MetricsConfigModel, SnapshotMetaResponse
from practice_metrics.cache import Snapshot, SnapshotCache
from practice_metrics.config import MetricsConfig, Settings, load_config
from practice_metrics.metrics_capacity import compute_capacity
from practice_metrics.metrics_clients import compute_clients
from practice_metrics.metrics_executive import compute_executive
from practice_metrics.metrics_pipeline import compute_pipeline
from practice_metrics.metrics_trends import compute_trends
from practice_metrics.sources import LocalFileFetcher, WorkbookSource


app = FastAPI(title="Practice Metrics API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=1)
def get_cache() -> SnapshotCache:
    settings = get_settings()
    source = WorkbookSource(
        LocalFileFetcher(settings.data_dir),
        master_file=settings.master_file,
        marketing_file=settings.marketing_file,
    )
    return SnapshotCache(source, ttl=timedelta(seconds=settings.cache_ttl_seconds))


@lru_cache(maxsize=1)
def get_config() -> MetricsConfig:
    settings = get_settings()
    if settings.config_file is None:
        return load_config()
    model = MetricsConfigModel.model_validate_json(settings.config_file.read_text())
    return load_config(model.model_dump(exclude_none=True))


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to fetch data", "details": str(exc), "type": type(exc).__name__},
    )


def _snapshot_meta(snapshot: Snapshot) -> SnapshotMetaResponse:
    return SnapshotMetaResponse(fetched_at=snapshot.fetched_at, row_counts=snapshot.row_counts())


@app.get("/meta/snapshot", response_model=SnapshotMetaResponse)
def meta_snapshot(cache: SnapshotCache = Depends(get_cache)):
    try:
        return _snapshot_meta(cache.load())
    except Exception as exc:
        logger.exception("meta_snapshot failed")
        return _error(exc)


@app.post("/refresh", response_model=SnapshotMetaResponse)
def refresh(cache: SnapshotCache = Depends(get_cache)):
    try:
        return _snapshot_meta(cache.load(force_refresh=True))
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)


@app.get("/executive")
def executive(cache: SnapshotCache = Depends(get_cache), config: MetricsConfig = Depends(get_config)):
    try:
        return _json(compute_executive(cache.load(), config))
    except Exception as exc:
        logger.exception("executive failed")
        return _error(exc)


@app.get("/pipeline")
def pipeline(cache: SnapshotCache = Depends(get_cache), config: MetricsConfig = Depends(get_config)):
    try:
        return _json(compute_pipeline(cache.load(), config))
    except Exception as exc:
        logger.exception("pipeline failed")
        return _error(exc)


@app.get("/capacity")
def capacity(cache: SnapshotCache = Depends(get_cache), config: MetricsConfig = Depends(get_config)):
    try:
        return _json(compute_capacity(cache.load(), config))
    except Exception as exc:
        logger.exception("capacity failed")
        return _error(exc)


@app.get("/clients")
def clients(
    office: Optional[str] = Query(default=None),
    cache: SnapshotCache = Depends(get_cache),
    config: MetricsConfig = Depends(get_config),
):
    try:
        return _json(compute_clients(cache.load(), config, office=office or None))
    except Exception as exc:
        logger.exception("clients failed")
        return _error(exc)


@app.get("/trends")
def trends(cache: SnapshotCache = Depends(get_cache)):
    try:
        return _json(compute_trends(cache.load()))
    except Exception as exc:
        logger.exception("trends failed")
        return _error(exc)


@app.get("/data")
def data(
    type: DataType = Query(default="all"),
    office: Optional[str] = Query(default=None),
    cache: SnapshotCache = Depends(get_cache),
    config: MetricsConfig = Depends(get_config),
):
    try:
        snapshot = cache.load()
        if type == "executive":
            result = compute_executive(snapshot, config)
        elif type == "pipeline":
            result = compute_pipeline(snapshot, config)
        elif type == "capacity":
            result = compute_capacity(snapshot, config)
        elif type == "marketing":
            result = compute_clients(snapshot, config, office=office or None)
        elif type == "trends":
            result = compute_trends(snapshot)
        else:
            result = {
                "executive": compute_executive(snapshot, config),
                "pipeline": compute_pipeline(snapshot, config),
                "capacity": compute_capacity(snapshot, config),
                "marketing": compute_clients(snapshot, config),
                "trends": compute_trends(snapshot),
            }
        return _json(result)
    except Exception as exc:
        logger.exception("data failed")
        return _error(exc)
