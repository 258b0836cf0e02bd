from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx
from fastapi import Body, FastAPI, Header, HTTPException, Response

from .config import Settings
from .engine import TimetableEngine
from .models import Event
from .store import CALENDAR_URL_KEY, SettingsStore


logger = logging.getLogger("timetable")


def _event_payload(ev: Optional[Event]) -> Optional[dict[str, Any]]:
    if ev is None:
        return None
    return {
        "id": ev.id,
        "start": ev.start.isoformat(),
        "end": ev.end.isoformat(),
        "duration_minutes": ev.duration_minutes,
        "summary": ev.summary,
        "location": ev.location,
        "description": ev.description,
        "course_code": ev.course_code,
        "course_name": ev.course_name,
    }


def day_payload(engine: TimetableEngine) -> dict[str, Any]:
    day = engine.current_day
    nxt = engine.next_event()
    return {
        "day": day.isoformat() if day else None,
        "state": engine.state.value,
        "error": engine.last_error,
        "events": [_event_payload(e) for e in engine.current_day_events()],
        "can_move_prev": engine.can_move_prev(),
        "can_move_next": engine.can_move_next(),
        "next_event_id": nxt.id if nxt else None,
    }


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    app_state: dict[str, Any] = {"engine": None}

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store = SettingsStore(settings.settings_path)
        if settings.calendar_url and not store.get(CALENDAR_URL_KEY):
            store.set(CALENDAR_URL_KEY, settings.calendar_url)
        client = httpx.AsyncClient(transport=transport)
        engine = TimetableEngine(
            client,
            store,
            tz=settings.tz,
            next_event_interval=settings.next_event_interval_seconds,
            reset_cursor_on_refresh=settings.reset_cursor_on_refresh,
        )
        app_state["engine"] = engine
        stop_event = asyncio.Event()
        bg_task: Optional[asyncio.Task] = None
        try:
            # The refresh loop does the first load
            engine.tracker.start(engine.clock)
            bg_task = asyncio.create_task(
                engine.run_refresh_loop(stop_event, settings.refresh_interval_seconds)
            )
            logger.info("Timetable engine started (tz=%s)", settings.timezone)
            yield
        finally:
            stop_event.set()
            if bg_task:
                bg_task.cancel()
                try:
                    await bg_task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.error("Refresh loop failed: %s", e)
            await engine.deactivate()
            await client.aclose()
            app_state["engine"] = None

    app = FastAPI(lifespan=lifespan)

    def _engine() -> TimetableEngine:
        engine = app_state["engine"]
        if engine is None:
            raise HTTPException(status_code=503, detail="Engine not started")
        return engine

    @app.get("/health")
    async def health() -> Response:
        return Response(content="OK", media_type="text/plain")

    @app.get("/day")
    async def current_day() -> dict:
        return day_payload(_engine())

    @app.post("/day/next")
    async def next_day() -> dict:
        engine = _engine()
        engine.move_next()
        return day_payload(engine)

    @app.post("/day/prev")
    async def prev_day() -> dict:
        engine = _engine()
        engine.move_prev()
        return day_payload(engine)

    @app.post("/day/today")
    async def today() -> dict:
        engine = _engine()
        engine.go_today()
        return day_payload(engine)

    @app.get("/next-event")
    async def next_event() -> Optional[dict]:
        return _event_payload(_engine().next_event())

    @app.get("/settings/calendar-url")
    async def get_calendar_url() -> dict:
        return {"url": _engine().calendar_url}

    @app.put("/settings/calendar-url")
    async def put_calendar_url(url: Optional[str] = Body(default=None, embed=True)) -> dict:
        engine = _engine()
        await engine.set_calendar_url(url)
        return day_payload(engine)

    @app.post("/refresh")
    async def refresh(
        x_refresh_token: Optional[str] = Header(default=None, alias="X-Refresh-Token"),
    ) -> dict:
        if settings.refresh_token:
            if not x_refresh_token or x_refresh_token != settings.refresh_token:
                raise HTTPException(status_code=401, detail="Unauthorized")
        engine = _engine()
        state = await engine.refresh()
        return {"status": state.value, "events": len(engine.events), "error": engine.last_error}

    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)

# Run with: uvicorn timetable.main:app --host 0.0.0.0 --port 8787
