# FILE: main.py
"""
Decision Engine - FastAPI Application
Version: 1.0.0

Features:
- POST /decision/resolve: intent -> one terminal outcome + typed payload
- Durable decision cache (exact key, fingerprint, similarity + equivalence judge)
- External judges via OpenAI (optional; the engine runs deterministic-only without a key)
"""
import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from config import get_engine_config
from decision_engine.db import init_db
from decision_engine.router import router as decision_router

logging.basicConfig(
    level=os.getenv("DECISION_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Decision Engine",
    version="1.0.0",
    description="Intent classification into terminal outcomes with a durable decision cache",
)

# ====== CORS ======

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ====== STARTUP ======

@app.on_event("startup")
def on_startup():
    init_db()

    config = get_engine_config()
    logger.info(f"[startup] policy_version={config.policy_version} schema={config.schema_version}")

    if os.getenv("OPENAI_API_KEY"):
        logger.info(f"[startup] OPENAI_API_KEY: [OK] set (judges use {config.judges.model})")
    else:
        logger.warning("[startup] OPENAI_API_KEY: [X] NOT SET - judges return no signal, deterministic gates only")


# ====== ROUTERS ======

app.include_router(decision_router)


# ====== PUBLIC ENDPOINTS ======

@app.get("/ping")
def ping():
    """Health check."""
    return {"status": "ok", "policy_version": get_engine_config().policy_version}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=int(os.getenv("PORT", "8000")), reload=False)
