"""
deployment/api.py - REST API

HTTP surface over ProgressService. Request bodies are validated by the
pydantic models below before any storage access.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from questline.core.enums import GameMode, QuestState
from questline.errors import (
    ProgressDocumentExists,
    ProgressDocumentNotFound,
    TransactionAbortedError,
    ValidationFailed,
)
from questline.services.validation import INVALID_STATE_MESSAGE

if TYPE_CHECKING:
    from questline.bootstrap.app import AppContext

logger = logging.getLogger("deployment.api")

API_VERSION = "0.3.0"

_QUEST_STATES = {s.value for s in QuestState}
_GAME_MODES = {m.value for m in GameMode}


# =============================================================================
# Request Models
# =============================================================================

def _check_mode(v):
    if v is not None and v not in _GAME_MODES:
        raise ValueError("Game mode must be 'pvp' or 'pve'")
    return v


class TaskUpdate(BaseModel):
    """Request model for a single quest transition."""
    state: str
    mode: Optional[str] = None

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        if v not in _QUEST_STATES:
            raise ValueError(INVALID_STATE_MESSAGE)
        return v

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v):
        return _check_mode(v)


class TaskBatchItem(BaseModel):
    """One entry of a batch quest update."""
    id: str
    state: str

    @field_validator('id')
    @classmethod
    def validate_id(cls, v):
        if not v.strip():
            raise ValueError("Each task update must have a valid taskId and state")
        return v

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        if v not in _QUEST_STATES:
            raise ValueError(INVALID_STATE_MESSAGE)
        return v


class ObjectiveUpdate(BaseModel):
    """Request model for an objective update; at least one field is required."""
    state: Optional[str] = None
    count: Optional[int] = None

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        if v is not None and v not in (QuestState.COMPLETED.value, QuestState.UNCOMPLETED.value):
            raise ValueError('State must be "completed" or "uncompleted"')
        return v

    @field_validator('count')
    @classmethod
    def validate_count(cls, v):
        if v is not None and v < 0:
            raise ValueError("Count must be a non-negative integer")
        return v


class LevelUpdate(BaseModel):
    """Request model for setting the player level."""
    level: int


class DocumentCreate(BaseModel):
    """Request model for creating a progress document."""
    display_name: Optional[str] = None
    game_edition: int = 1

    @field_validator('game_edition')
    @classmethod
    def validate_edition(cls, v):
        if v < 1 or v > 6:
            raise ValueError("Game edition must be a number between 1 and 6")
        return v


# =============================================================================
# Application
# =============================================================================

def _http_error(e: Exception, action: str) -> HTTPException:
    """Map a service exception to an HTTPException."""
    if isinstance(e, ValidationFailed):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, ProgressDocumentNotFound):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, (TransactionAbortedError, ProgressDocumentExists)):
        return HTTPException(status_code=409, detail=e.message)
    logger.exception(f"{action} failed: {e}")
    return HTTPException(status_code=500, detail="Internal server error")


def create_fastapi_app(context: "AppContext") -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        context: Built application context (config and progress service)

    Returns:
        FastAPI application instance
    """
    api_config = context.config.api

    app = FastAPI(
        title="questline API",
        description="Quest progress, dependency invalidation and availability",
        version=API_VERSION,
        docs_url=api_config.docs_url if api_config.enable_docs else None,
        redoc_url="/redoc" if api_config.enable_docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    service = context.progress_service

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        return JSONResponse(status_code=400, content={"detail": message})

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": API_VERSION,
            "quests": len(context.catalog) if context.catalog is not None else 0,
            "uptime_seconds": context.get_uptime(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # =========================================================================
    # Progress
    # =========================================================================

    @app.post("/api/v1/progress/{player_id}", status_code=201)
    async def create_document(player_id: str, body: Optional[DocumentCreate] = None):
        body = body or DocumentCreate()
        try:
            stored = service.ensure_document(player_id, body.display_name, body.game_edition)
        except Exception as e:
            raise _http_error(e, f"Create document for {player_id}")
        return {"playerId": player_id, "version": stored.version}

    @app.get("/api/v1/progress/{player_id}")
    async def get_progress(player_id: str, gameMode: Optional[str] = Query(None)):
        try:
            report = service.get_progress_report(player_id, gameMode)
        except Exception as e:
            raise _http_error(e, f"Progress report for {player_id}")
        return {"data": report, "meta": {"self": player_id, "gameMode": gameMode}}

    @app.post("/api/v1/progress/{player_id}/tasks/{quest_id}")
    async def update_task(player_id: str, quest_id: str, body: TaskUpdate):
        try:
            event = service.update_single_quest(player_id, quest_id, body.state, body.mode)
        except Exception as e:
            raise _http_error(e, f"Update quest {quest_id} for {player_id}")
        return {
            "data": {"taskId": quest_id, "state": body.state, "message": "Task updated successfully"},
            "event": event.to_dict(),
        }

    @app.post("/api/v1/progress/{player_id}/tasks")
    async def update_tasks(player_id: str, body: List[TaskBatchItem], gameMode: Optional[str] = Query(None)):
        try:
            events = service.update_multiple_quests(
                player_id, [item.model_dump() for item in body], gameMode,
            )
        except Exception as e:
            raise _http_error(e, f"Batch quest update for {player_id}")
        return {
            "data": {"updatedTasks": [item.id for item in body], "message": "Tasks updated successfully"},
            "events": [event.to_dict() for event in events],
        }

    @app.post("/api/v1/progress/{player_id}/objectives/{objective_id}")
    async def update_objective(
        player_id: str,
        objective_id: str,
        body: ObjectiveUpdate,
        gameMode: Optional[str] = Query(None),
    ):
        try:
            result = service.update_objective(player_id, objective_id, body.state, body.count, gameMode)
        except Exception as e:
            raise _http_error(e, f"Update objective {objective_id} for {player_id}")
        result["message"] = "Task objective updated successfully"
        return {"data": result}

    @app.put("/api/v1/progress/{player_id}/level")
    async def set_level(player_id: str, body: LevelUpdate, gameMode: Optional[str] = Query(None)):
        try:
            level = service.set_player_level(player_id, body.level, gameMode)
        except Exception as e:
            raise _http_error(e, f"Set level for {player_id}")
        return {"data": {"level": level, "message": "Level updated successfully"}}

    @app.post("/api/v1/progress/{player_id}/sweep")
    async def run_sweep(player_id: str, gameMode: Optional[str] = Query(None)):
        try:
            events = service.run_consistency_sweep(player_id, gameMode)
        except Exception as e:
            raise _http_error(e, f"Consistency sweep for {player_id}")
        return {
            "data": {
                "invalidatedTasks": sorted({q for e in events for q in e.invalidated_quests}),
                "invalidatedObjectives": sorted({o for e in events for o in e.invalidated_objectives}),
            },
            "events": [event.to_dict() for event in events],
        }

    @app.get("/api/v1/progress/{player_id}/events")
    async def get_events(player_id: str, limit: int = Query(20, ge=1, le=500)):
        return {"data": [event.to_dict() for event in service.log.for_player(player_id, limit)]}

    # =========================================================================
    # Team
    # =========================================================================

    @app.get("/api/v1/team/needed-by")
    async def team_needed_by(members: str = Query(...), gameMode: Optional[str] = Query(None)):
        member_ids = [m.strip() for m in members.split(",") if m.strip()]
        if not member_ids:
            raise HTTPException(status_code=400, detail="At least one member id is required")
        try:
            needed = service.team_needed_by(member_ids, gameMode)
        except Exception as e:
            raise _http_error(e, "Team needed-by")
        return {"data": needed, "meta": {"members": member_ids}}

    logger.info("API application created")
    return app
