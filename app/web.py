from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.api import get_monitor
from services.broadcaster import UPDATE_EVENT
from services.monitor import MonitorContext


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    monitor: MonitorContext = Depends(get_monitor),
) -> HTMLResponse:
    readings = await monitor.current_readings()
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "readings": readings,
            "source": monitor.path.name,
            "update_event": UPDATE_EVENT,
        },
    )
