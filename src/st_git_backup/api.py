import logging

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .constants import API_PREFIX, APP_NAME
from .engine import SyncEngine, failure_message
from .errors import BusyError

logger = logging.getLogger(APP_NAME)


class SyncRequest(BaseModel):
    repoUrl: str | None = None
    token: str | None = None
    userName: str | None = None
    userEmail: str | None = None
    branch: str | None = None


def create_router(engine: SyncEngine) -> APIRouter:
    """Builds the status and sync routes bound to `engine`.

    Handlers are plain functions so the blocking git sequence runs in the
    server's thread pool instead of the event loop.
    """
    router = APIRouter()

    @router.get("/status")
    def get_status() -> dict:
        return engine.status.get().to_dict()

    @router.post("/sync")
    def trigger_sync(req: SyncRequest | None = None):
        options = req.model_dump(exclude_none=True) if req else {}
        try:
            engine.sync(options)
        except BusyError as e:
            logger.warning(f"REJECTED: sync request while busy: {e}")
            return JSONResponse(status_code=409, content={"error": str(e)})
        except Exception as e:
            message = getattr(e, "status_message", None) or failure_message(e)
            return JSONResponse(status_code=500, content={"error": message})
        return {"success": True}

    return router


def create_app(engine: SyncEngine | None = None) -> FastAPI:
    """Creates the control interface application.

    Args:
        engine (SyncEngine | None): The engine to expose. A default one is
                                    created when omitted.

    Returns:
        FastAPI: The application, with routes under `API_PREFIX`.
    """
    engine = engine or SyncEngine()
    app = FastAPI(title="Git Backup Assistant", version="1.0.0")
    app.include_router(create_router(engine), prefix=API_PREFIX)
    app.state.engine = engine
    return app
