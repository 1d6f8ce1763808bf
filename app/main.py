import logging
from datetime import datetime
from typing import Dict, Any
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Body, HTTPException
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from alarm_engine import AlarmSession, Alarm, DeleteResult, DeserializationFailure
from alarm_engine.formatting import argb_to_css, display_title, text_color_for
from alarm_engine.logging_utils import setup_logging

from alarm_config import AppConfig, load_app_config

logger = logging.getLogger(__name__)

APP_DIR = Path(__file__).parent
TEMPLATES_DIR = APP_DIR / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def build_session(config: AppConfig) -> AlarmSession:
    """Create the process-wide alarm session."""
    return AlarmSession.from_config(config.engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the alarm session for the lifetime of the server."""
    config = load_app_config()
    setup_logging(log_level=config.engine.log_level, log_format=config.engine.log_format)
    session = build_session(config)

    logger.info("Starting alarm clock")
    report = session.start()
    if report.skipped:
        logger.warning(f"{report.skipped} stored alarm(s) could not be read and were skipped")
    app.state.session = session
    app.state.config = config

    yield  # Application runs here

    session.stop()
    logger.info("Alarm clock stopped")


app = FastAPI(title="Alarm Clock", lifespan=lifespan)


def get_session(request: Request) -> AlarmSession:
    return request.app.state.session


@app.get("/health")
async def health(request: Request):
    """Health check endpoint."""
    session = get_session(request)
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "alarms": len(session.observe_alarm_set()),
        "stale": session.is_stale
    }


@app.get("/", response_class=HTMLResponse)
def home(request: Request):
    """Alarm list page."""
    session = get_session(request)
    cards = []
    for alarm in session.observe_alarm_set():
        cards.append({
            "id": alarm.id,
            "title": display_title(alarm),
            "background": argb_to_css(alarm.color),
            "foreground": argb_to_css(text_color_for(alarm.color)),
            "is_set": alarm.is_set
        })
    return templates.TemplateResponse(request, "index.html", {
        "title": request.app.state.config.title,
        "alarms": cards,
        "stale": session.is_stale
    })


@app.get("/api/alarms")
def list_alarms(request: Request):
    """Current ordered alarm set."""
    return [alarm.to_dict() for alarm in get_session(request).observe_alarm_set()]


@app.post("/api/alarms/new")
def new_alarm(request: Request):
    """Draft a new alarm with default values; it is not stored until committed."""
    return get_session(request).create().to_dict()


@app.put("/api/alarms/{alarm_id}")
def commit_alarm(alarm_id: str, request: Request, payload: Dict[str, Any] = Body(...)):
    """Insert a new alarm or replace the stored one with the same id."""
    try:
        alarm = Alarm.from_dict(payload)
    except DeserializationFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    if alarm.id != alarm_id:
        raise HTTPException(status_code=400, detail="Alarm id in body does not match URL")

    session = get_session(request)
    result = session.commit(alarm)
    return {"status": result.value, "persisted": not session.is_stale}


@app.delete("/api/alarms/{alarm_id}")
def delete_alarm(alarm_id: str, request: Request):
    """Delete an alarm."""
    session = get_session(request)
    result = session.delete(alarm_id)
    if result is DeleteResult.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Alarm not found")
    return {"status": result.value, "persisted": not session.is_stale}


@app.post("/api/alarms/{alarm_id}/toggle")
def toggle_alarm(alarm_id: str, request: Request):
    """Switch an alarm on or off."""
    updated = get_session(request).toggle_is_set(alarm_id)
    if updated is None:
        raise HTTPException(status_code=404, detail="Alarm not found")
    return updated.to_dict()


@app.post("/api/alarms/{alarm_id}/fire_now")
def fire_alarm_now(alarm_id: str, request: Request):
    """Show an alarm's notification immediately."""
    displayed = get_session(request).fire_now(alarm_id)
    if displayed is None:
        raise HTTPException(status_code=404, detail="Alarm not found")
    logger.info(f"Fired alarm {alarm_id} on request (displayed: {displayed})")
    return {"status": "success" if displayed else "not_displayed"}


if __name__ == "__main__":
    import uvicorn

    config = AppConfig.from_env()
    setup_logging(log_level=config.engine.log_level, log_format=config.engine.log_format)
    logger.info(f"Starting alarm clock on {config.host}:{config.port}")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.engine.log_level.lower(),
        access_log=False
    )
