"""
Optional FastAPI REST endpoint for P&L reconciliation.
Can be run with: uvicorn plrecon.api:app --reload
"""

from typing import Literal, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from plrecon.main import start_reconciliation, build_policy
from plrecon.errors import ValidationError
from plrecon.config import get_config

app = FastAPI(
    title="P&L Reconciliation API",
    description="LLM-assisted reconciliation of invoices into a P&L workbook",
    version="1.0.0",
)

config = get_config()


class ReconcileRequest(BaseModel):
    period: str
    mode: Literal["test", "full"] = "test"
    scope: Optional[Literal["single", "merged"]] = None
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


@app.post("/reconcile")
def reconcile_endpoint(request: ReconcileRequest):
    """
    Run a reconciliation for one period against the configured ledgers.

    Returns:
        JSON run summary, a 400 error for invalid input, or a 500 error
        when the ledgers cannot be read or written
    """
    try:
        policy = build_policy(request.scope, threshold=request.threshold)
        summary = start_reconciliation(request.period, policy, request.mode)
    except ValidationError as e:
        return JSONResponse(
            content={
                "error": str(e),
                "message": "Reconciliation could not start",
            },
            status_code=400,
        )
    except Exception as e:
        return JSONResponse(
            content={
                "error": str(e),
                "message": "Failed to run reconciliation",
            },
            status_code=500,
        )

    content = summary.model_dump(mode="json")
    content["message"] = summary.message()
    return JSONResponse(content=content, status_code=200)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/config")
def get_config_endpoint():
    """Get current configuration (sanitized)."""
    return {
        "llm_provider": config.LLM_PROVIDER,
        "llm_model": config.LLM_MODEL,
        "match_scope": config.MATCH_SCOPE,
        "match_threshold_single": config.MATCH_THRESHOLD_SINGLE,
        "match_threshold_merged": config.MATCH_THRESHOLD_MERGED,
        "collections": config.RECONCILE_COLLECTIONS,
        "batch_size": config.BATCH_SIZE,
        "test_mode_limit": config.TEST_MODE_LIMIT,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
