"""Injury Risk Backend — FastAPI Routes"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from config import (
    DATA_PATH, CHAIN_FIELDS,
    CHAIN_MAX_DEPTH, CHAIN_MIN_SUPPORT, CHAIN_MIN_DELTA,
)
from models import (
    RiskQuery, EstimateResponse, ChainsResponse, DomainsResponse,
    FactorRatesResponse, RecordsUpdate, RecordsUpdateResponse,
)
from records import load_records
from session import EstimatorSession

logger = logging.getLogger("injury_risk.api")


_allowed_origins = [
    f"http://localhost:{p}" for p in range(3000, 3010)
] + [
    f"http://localhost:{p}" for p in range(5173, 5180)
] + [
    f"http://127.0.0.1:{p}" for p in range(3000, 3010)
] + [
    f"http://127.0.0.1:{p}" for p in range(5173, 5180)
]


def _session(request: Request) -> EstimatorSession:
    session = request.app.state.session
    if session is None:
        # Startup has not run (e.g. a bare TestClient); serve an empty view
        session = EstimatorSession()
        request.app.state.session = session
    return session


def create_app(session: Optional[EstimatorSession] = None) -> FastAPI:
    app = FastAPI(title="Collision Injury Risk API", version="1.0.0")
    app.state.session = session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─────────────────────────── Startup Event ──────────────────────

    @app.on_event("startup")
    async def startup_event():
        """Load the collision record set unless a session was injected."""
        if app.state.session is not None:
            return
        records = await run_in_threadpool(load_records, DATA_PATH)
        app.state.session = EstimatorSession(records)
        logger.info("Injury estimator will train on first request")

    # ─────────────────────────── Estimator ──────────────────────────

    @app.post("/api/estimate", response_model=EstimateResponse)
    async def estimate(query: RiskQuery, request: Request):
        session = _session(request)
        result = await run_in_threadpool(session.estimate, query)
        if result.available:
            logger.info(f"Estimate {query.model_dump(exclude_none=True)} → {result.probability:.3f}")
        return result

    @app.get("/api/chains", response_model=ChainsResponse)
    async def risk_chains(
        request: Request,
        maxDepth: int = Query(CHAIN_MAX_DEPTH, ge=0, le=len(CHAIN_FIELDS)),
        minSupport: int = Query(CHAIN_MIN_SUPPORT, ge=0),
        minDelta: float = Query(CHAIN_MIN_DELTA, ge=0.0),
    ):
        session = _session(request)
        return await run_in_threadpool(session.chains, maxDepth, minSupport, minDelta)

    # ─────────────────────────── Data ───────────────────────────────

    @app.get("/api/domains", response_model=DomainsResponse)
    async def domains(request: Request):
        session = _session(request)
        fields = await run_in_threadpool(session.domain_options)
        return DomainsResponse(recordCount=len(session.records), fields=fields)

    @app.get("/api/factors/{field}", response_model=FactorRatesResponse)
    async def factor_rates(field: str, request: Request, limit: Optional[int] = Query(None, ge=1)):
        if field not in CHAIN_FIELDS:
            raise HTTPException(status_code=404, detail=f"Unknown field '{field}'")
        session = _session(request)
        return await run_in_threadpool(session.factor_rates, field, limit)

    @app.put("/api/records", response_model=RecordsUpdateResponse)
    async def replace_records(update: RecordsUpdate, request: Request):
        session = _session(request)
        await run_in_threadpool(session.replace_records, update.records)
        model = await run_in_threadpool(lambda: session.model)
        return RecordsUpdateResponse(
            recordCount=len(update.records),
            baseRate=model.base_rate if model is not None else 0.0,
            available=model is not None,
        )

    # ─────────────────────────── Utility Endpoints ──────────────────

    @app.get("/api/health")
    async def health(request: Request):
        session = request.app.state.session
        return {
            "status": "ok",
            "model": "hashed-logistic-regression",
            "records": len(session.records) if session is not None else 0,
        }

    return app


app = create_app()
