# FILE: decision_engine/router.py
"""
Decision Engine Router - HTTP API Endpoints

- POST /decision/resolve - Run the engine on one intent
- GET /decision/lookup - Cached record for an intent (exact key)
- POST /decision/gates/{gate} - Run one gate on its own (cached per gate)
- GET /decision/records - Search persisted records
- GET /decision/records/{record_id} - One record by id
"""
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from .db import SessionLocal
from .judges import get_judge_client
from .orchestrator import DecisionEngine
from .schemas import (
    Category,
    DecisionEngineInput,
    DecisionGate,
    DecisionRecord,
    DecisionSearch,
    DecisionVerdict,
    EngineOutput,
    GateCheckOutput,
)
from .store import SqlDecisionStore

router = APIRouter(
    prefix="/decision",
    tags=["decision"],
)


class ResolveRequest(DecisionEngineInput):
    collect_prompt_trace: bool = False


class GateCheckRequest(BaseModel):
    intent: str
    days: Optional[float] = None
    ui_locale: str = "en"


class RecordsPage(BaseModel):
    count: int
    records: List[DecisionRecord]


@lru_cache(maxsize=1)
def get_decision_engine() -> DecisionEngine:
    """Process-wide engine over the SQL store. Overridden in tests."""
    return DecisionEngine(SqlDecisionStore(SessionLocal), judge_client=get_judge_client())


# ============== DECIDE ==============

@router.post("/resolve", response_model=EngineOutput)
async def resolve(data: ResolveRequest, engine: DecisionEngine = Depends(get_decision_engine)):
    request = DecisionEngineInput(
        intent=data.intent,
        days=data.days,
        ui_locale=data.ui_locale,
        force_proceed=data.force_proceed,
    )
    return await engine.decide(request, collect_prompt_trace=data.collect_prompt_trace)


@router.post("/gates/{gate}", response_model=GateCheckOutput)
async def check_gate(
    gate: DecisionGate,
    data: GateCheckRequest,
    engine: DecisionEngine = Depends(get_decision_engine),
):
    """Single gate, reused while fresh for that gate's window."""
    try:
        return await engine.check_gate(gate, data.intent, days=data.days, ui_locale=data.ui_locale)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============== RECORDS ==============

@router.get("/lookup", response_model=DecisionRecord)
async def lookup(
    intent: str,
    days: Optional[float] = None,
    ui_locale: str = "en",
    engine: DecisionEngine = Depends(get_decision_engine),
):
    """Cached decision for this exact intent, regardless of freshness."""
    record = await engine.lookup(intent, days=days, ui_locale=ui_locale)
    if not record:
        raise HTTPException(status_code=404, detail="No cached decision")
    return record


@router.get("/records", response_model=RecordsPage)
async def list_records(
    q: Optional[str] = None,
    category: Optional[Category] = None,
    intent_lang: Optional[str] = None,
    gate: Optional[DecisionGate] = None,
    verdict: Optional[DecisionVerdict] = None,
    days_bucket: Optional[str] = None,
    policy_version: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=500),
    engine: DecisionEngine = Depends(get_decision_engine),
):
    filters = DecisionSearch(
        intent_substring=q,
        category=category,
        intent_lang=intent_lang,
        gate=gate,
        verdict=verdict,
        days_bucket=days_bucket,
        policy_version=policy_version,
        limit=limit,
    )
    records = await engine.search(filters)
    return RecordsPage(count=len(records), records=records)


@router.get("/records/{record_id}", response_model=DecisionRecord)
async def get_record(record_id: str, engine: DecisionEngine = Depends(get_decision_engine)):
    record = await engine.store.get_by_id(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Decision record not found")
    return record
