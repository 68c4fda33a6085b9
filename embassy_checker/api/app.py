"""
Embassy Checker API — FastAPI endpoints.

Exposes the query engine over HTTP:
- Health check
- Running an embassy check and returning its report and progress
"""

import os
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from embassy_checker.errors import (
    EntityNotFound,
    ExecutionInProgress,
    FetchError,
    InvalidConfiguration,
)
from embassy_checker.models.query import QueryConfigurationBuilder
from embassy_checker.models.region import FetchFunction
from embassy_checker.nationstates.client import ClientConfig, NationStatesClient
from embassy_checker.observability.logging import configure_structlog
from embassy_checker.progress.notifier import RecordingObserver
from embassy_checker.query.engine import QueryEngine

LOG_ENVIRONMENT_ENV = "LOG_ENV"


# --- Request/Response Models ---

class CheckRequest(BaseModel):
    region: str
    rmb_activity_days: Optional[int] = None
    minimum_age_days: Optional[int] = None
    tags: Optional[List[str]] = None


class CheckResponse(BaseModel):
    report: str
    sections: list
    progress: list
    embassies_checked: int
    regions_retrieved: int


# --- Application Factory ---

def create_app(
    fetch: Optional[FetchFunction] = None,
    clock: Optional[Callable[[], float]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    # The app owns (and closes) the client only when it created it
    owned_client: Optional[NationStatesClient] = None
    if fetch is None:
        owned_client = NationStatesClient(ClientConfig.from_env())
        fetch = owned_client

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owned_client is not None:
            owned_client.close()

    app = FastAPI(
        title="Embassy Checker API",
        description="Audits the embassy regions of a NationStates region",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.client = owned_client

    engine = QueryEngine(fetch, clock=clock) if clock else QueryEngine(fetch)
    app.state.engine = engine

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/checks", response_model=CheckResponse)
    def run_check(req: CheckRequest):
        """Run an embassy check for a region."""
        builder = QueryConfigurationBuilder(req.region)
        if req.rmb_activity_days is not None:
            builder.rmb_activity(req.rmb_activity_days)
        if req.minimum_age_days is not None:
            builder.minimum_age(req.minimum_age_days)
        if req.tags is not None:
            builder.region_tags(req.tags)

        recorder = RecordingObserver()
        engine.register(recorder)
        try:
            result = engine.run(builder.build())
        except InvalidConfiguration as e:
            raise HTTPException(400, str(e))
        except EntityNotFound as e:
            raise HTTPException(404, str(e))
        except ExecutionInProgress as e:
            raise HTTPException(409, str(e))
        except FetchError as e:
            raise HTTPException(502, str(e))
        finally:
            engine.notifier.unregister(recorder)

        return CheckResponse(
            report=result.report,
            sections=[s.model_dump(mode="json") for s in result.sections],
            progress=[e.model_dump(mode="json") for e in recorder.events],
            embassies_checked=result.embassies_checked,
            regions_retrieved=result.regions_retrieved,
        )

    return app


# Default application instance
configure_structlog(os.getenv(LOG_ENVIRONMENT_ENV, "production"))
app = create_app()
