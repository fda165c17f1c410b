import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from flashdeck.application.scheduler import Scheduler
from flashdeck.consts import VERSION
from flashdeck.domain.models import Outcome

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("flashdeck.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"flashdeck server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("flashdeck server shutting down...")


app = FastAPI(
    title="flashdeck server",
    description="HTTP API for spaced-repetition review scheduling.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


async def get_scheduler() -> Scheduler:
    """
    Build a scheduler from the resolved config for each request.

    Overridden in tests via app.dependency_overrides.
    """
    from flashdeck.application.config import resolve_config
    from flashdeck.application.factory import build_scheduler

    return await build_scheduler(resolve_config())


SchedulerDep = Annotated[Scheduler, Depends(get_scheduler)]


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReviewRequest(BaseModel):
    id: str
    outcome: Outcome


class LaterRequest(BaseModel):
    id: str


class ScheduledItemResponse(BaseModel):
    item: dict[str, Any]
    progress: dict[str, Any]
    days_until_review: int


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/next", response_model=ScheduledItemResponse)
async def next_flashcard(scheduler: SchedulerDep):
    """
    Return the next card to review. 404 when nothing is available.
    """
    picked = await scheduler.get_next_flashcard()
    if picked is None:
        raise HTTPException(status_code=404, detail="No flashcards available")

    return ScheduledItemResponse(
        item=picked.item.to_dict(),
        progress=picked.progress.to_dict(),
        days_until_review=scheduler.algorithm.days_until_review(picked.progress),
    )


@app.post("/review")
async def record_review(req: ReviewRequest, scheduler: SchedulerDep):
    """Record a hard/good/easy outcome for a card."""
    logger.info(f"Review requested via API: {req.id} -> {req.outcome.value}")

    if await scheduler.store.get_item(req.id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown flashcard: {req.id}")

    updated = await scheduler.record_review(req.id, req.outcome)
    if updated is None:
        raise HTTPException(status_code=500, detail=f"Failed to record review for {req.id}")

    return {
        "id": req.id,
        "progress": updated.to_dict(),
        "days_until_review": scheduler.algorithm.days_until_review(updated),
    }


@app.post("/later")
async def mark_for_later(req: LaterRequest, scheduler: SchedulerDep):
    """Defer a card to the repeat-later queue."""
    if await scheduler.store.get_item(req.id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown flashcard: {req.id}")

    if not await scheduler.mark_for_later(req.id):
        raise HTTPException(status_code=500, detail=f"Failed to mark {req.id} for later")
    return {"ok": True}


@app.get("/stats")
async def get_stats(scheduler: SchedulerDep):
    sched = await scheduler.get_scheduling_stats()
    prog = await scheduler.get_progress_stats()
    if sched is None or prog is None:
        raise HTTPException(status_code=500, detail="Could not compute statistics")

    return {
        "due": sched.due,
        "new": sched.new,
        "later": sched.later,
        "total": sched.total,
        "completed": prog.completed,
        "unshown": prog.unshown,
        "percent_complete": prog.percent_complete,
    }


@app.post("/reset")
async def reset_progress(scheduler: SchedulerDep):
    logger.info("Received reset request.")
    if not await scheduler.reset_progress():
        raise HTTPException(status_code=500, detail="Failed to reset progress")
    return {"ok": True}


@app.get("/config")
async def get_algorithm_config(scheduler: SchedulerDep):
    """Effective algorithm settings (config file, env and stored overrides)."""
    return scheduler.algorithm.config.model_dump()
