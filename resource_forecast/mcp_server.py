"""resource-forecast MCP server.

Exposes the forecast grid as tools: reading and writing cells, marking
leave, bulk reassignment, week copy, working weekends, saved views and
CSV/XLSX export. All edits go through one grid session backed by the
resource API.
"""
from __future__ import annotations

import argparse
import logging
import os
from datetime import date
from typing import Any

from mcp.server.fastmcp import FastMCP

from forecast_grid.capacity import abort_on_unknown, keep_valid_items
from forecast_grid.models import CellKey
from forecast_grid.session import GridSession
from forecast_grid.sync import ChangeBus
from forecast_grid.views import FilterState, available_shows, departments

from .client import ForecastApiClient
from .config import load_env, runtime_config
from .storage import JsonSettingsStore

mcp = FastMCP(
    "resource-forecast",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Resource forecast grid for production coordinators. "
        "Cells hold fractional man-day allocations of people to work items; "
        "a person's day may not exceed 1.0 MD. Dates are ISO yyyy-mm-dd. "
        "Bulk tools return a preview unless confirm=true."
    ),
)

_ENV_FILE: str | None = None
_SESSION: GridSession | None = None
_BUS = ChangeBus()


async def _session() -> GridSession:
    global _SESSION
    if _SESSION is None:
        load_env(_ENV_FILE or os.getenv("FORECAST_ENV_FILE"))
        cfg = runtime_config()
        client = ForecastApiClient(
            base_url=cfg.base_url,
            api_token=cfg.api_token,
            timeout_s=cfg.timeout_s,
        )
        session = GridSession(
            client,
            bus=_BUS,
            store=JsonSettingsStore(cfg.settings_file),
            filters=FilterState(date_range=cfg.range_days),
        )
        await session.open()
        _SESSION = session
    return _SESSION


def _key(session: GridSession, person_id: str, day: str) -> CellKey:
    return CellKey(person_id, session.index_of(date.fromisoformat(day)))


def _keys(session: GridSession, person_id: str, days: list[str]) -> list[CellKey]:
    return [_key(session, person_id, d) for d in days]


def _cell_payload(session: GridSession, key: CellKey) -> dict[str, Any]:
    cell = session.cell(key)
    return {
        "person_id": key.person_id,
        "date": cell.day.isoformat(),
        "value": session.encoded(key),
        "total": round(cell.total, 4),
        "status": cell.status.value,
        "leave": cell.is_leave,
        "weekend_off": cell.weekend_off,
    }


def _grid_summary(session: GridSession) -> dict[str, Any]:
    f = session.filters
    rows = []
    for member in session.visible_members():
        cells = {}
        for i, d in enumerate(session.dates):
            value = session.encoded(CellKey(member.id, i))
            if session.cell(CellKey(member.id, i)).is_leave:
                value = "Leave"
            if value:
                cells[d.isoformat()] = value
        rows.append({"person_id": member.id, "emp_id": member.emp_id, "name": member.name, "cells": cells})
    return {
        "filters": f.to_dict(),
        "range": {"start": f.start_date.isoformat(), "end": f.end_date.isoformat()},
        "working_weekends": sorted(d.isoformat() for d in session.working_weekends),
        "departments": departments(session.members),
        "shows": available_shows(session.all_allocations()),
        "people": rows,
    }


# -- Grid --

@mcp.tool()
async def open_grid(
    start: str | None = None,
    date_range: int | None = None,
    department: str | None = None,
    shift: str | None = None,
    show: str | None = None,
    utilization: str | None = None,
    search: str | None = None,
) -> dict[str, Any]:
    """Set the grid filters, re-fetch, and return every visible person's non-empty cells."""
    session = await _session()
    data = session.filters.to_dict()
    overrides = {
        "startDate": start,
        "dateRange": date_range,
        "department": department,
        "shift": shift,
        "show": show,
        "utilization": utilization,
        "search": search,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    session.filters = session.filters.merged(data)
    session.selection.clear()
    await session.refresh()
    return _grid_summary(session)


@mcp.tool()
async def read_cell(person_id: str, day: str) -> dict[str, Any]:
    """Return one cell: encoded value, total MD and status."""
    session = await _session()
    return _cell_payload(session, _key(session, person_id, day))


@mcp.tool()
async def write_cell(person_id: str, days: list[str], value: str, keep_valid: bool = False) -> dict[str, Any]:
    """Write an encoded value such as ``SH010/SH020`` or ``SH010:0.25`` into one or more days.

    Unknown work items abort the write unless keep_valid is set, in which
    case only the valid items are written.
    """
    session = await _session()
    keys = _keys(session, person_id, days)
    policy = keep_valid_items if keep_valid else abort_on_unknown
    written = await session.apply_value(keys, value, on_unknown=policy)
    return {"written": len(written), "cells": [_cell_payload(session, k) for k in keys]}


@mcp.tool()
async def clear_cells(person_id: str, days: list[str]) -> dict[str, Any]:
    """Remove every allocation of the person on the given days."""
    session = await _session()
    cleared = await session.clear_cells(_keys(session, person_id, days))
    return {"cleared": len(cleared)}


@mcp.tool()
async def mark_leave(person_id: str, days: list[str]) -> dict[str, Any]:
    """Replace the person's allocations on the given days with leave."""
    session = await _session()
    keys = await session.mark_leave(_keys(session, person_id, days))
    return {"marked": len(keys)}


# -- Bulk --

@mcp.tool()
async def reassign(from_person_id: str, to_person_id: str, days: list[str], confirm: bool = False) -> dict[str, Any]:
    """Move allocations from one person to another on the given days.

    Without confirm=true only the preview description is returned.
    """
    session = await _session()
    indices = [session.index_of(date.fromisoformat(d)) for d in days]
    description = session.bulk.describe_reassign(from_person_id, to_person_id, indices)
    if not confirm:
        return {"preview": description, "applied": False}
    moved = await session.bulk.reassign(from_person_id, to_person_id, indices, confirm=lambda _: True)
    return {"preview": description, "applied": True, "moved": len(moved)}


@mcp.tool()
async def copy_week(person_id: str, source_start: str, target_start: str, confirm: bool = False) -> dict[str, Any]:
    """Duplicate a person's seven-day pattern onto another week, keeping what is already there."""
    session = await _session()
    source = date.fromisoformat(source_start)
    target = date.fromisoformat(target_start)
    description = await session.bulk.describe_copy_week(person_id, source, target)
    if not confirm:
        return {"preview": description, "applied": False}
    created = await session.bulk.copy_week(person_id, source, target, confirm=lambda _: True)
    return {"preview": description, "applied": True, "created": len(created)}


@mcp.tool()
async def toggle_working_weekend(day: str) -> dict[str, Any]:
    """Flip a Saturday or Sunday between working and off."""
    session = await _session()
    d = date.fromisoformat(day)
    return {"date": d.isoformat(), "working": session.toggle_working_weekend(d)}


@mcp.tool()
async def set_columns(order: list[str] | None = None, widths: dict[str, int] | None = None) -> dict[str, Any]:
    """Persist the identity column order and per-column export widths."""
    session = await _session()
    if order is not None:
        session.set_column_order(order)
    for column, width in (widths or {}).items():
        session.set_column_width(column, width)
    return {"order": session.column_order, "widths": session.column_widths}


# -- Saved views --

@mcp.tool()
async def list_views() -> list[dict[str, Any]]:
    """List saved resource views, quick filters first."""
    session = await _session()
    views = await session.views.load()
    return [
        {
            "id": v.id,
            "name": v.name,
            "is_public": v.is_public,
            "is_quick_filter": v.is_quick_filter,
            "is_default": v.is_default,
            "active": v.id == session.views.active_view_id,
        }
        for v in views
    ]


@mcp.tool()
async def save_view(name: str, is_public: bool = False, is_quick_filter: bool = False) -> dict[str, Any]:
    """Save the current filters as a named view."""
    session = await _session()
    view = await session.views.save(name, is_public=is_public, is_quick_filter=is_quick_filter)
    return {"id": view.id, "name": view.name}


@mcp.tool()
async def apply_view(view_id: str) -> dict[str, Any]:
    """Restore a saved view's filters and return the refreshed grid."""
    session = await _session()
    await session.views.apply(view_id)
    return _grid_summary(session)


@mcp.tool()
async def delete_view(view_id: str) -> dict[str, Any]:
    """Delete a saved view."""
    session = await _session()
    await session.views.delete(view_id)
    return {"deleted": view_id}


@mcp.tool()
async def set_default_view(view_id: str | None = None) -> dict[str, Any]:
    """Make a view the default (or clear the default when view_id is omitted)."""
    session = await _session()
    await session.views.set_default(view_id)
    return {"default": view_id}


# -- Export --

@mcp.tool()
async def export_csv(path: str | None = None) -> dict[str, Any]:
    """Export the grid as CSV to a file; returns the CSV text when no path is given."""
    from forecast_grid.io import export_filename, to_csv_text, write_csv

    session = await _session()
    if path is None:
        return {"filename": export_filename(date.today()), "csv": to_csv_text(session)}
    target = write_csv(session, path)
    return {"path": str(target)}


@mcp.tool()
async def export_xlsx(path: str) -> dict[str, Any]:
    """Export the grid as an XLSX workbook."""
    from forecast_grid.io import render_xlsx

    session = await _session()
    target = render_xlsx(session, path)
    return {"path": str(target)}


# -- Server entrypoints --

async def _run_http() -> None:
    import uvicorn
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse, PlainTextResponse
    from starlette.routing import Route

    api_key = os.getenv("MCP_API_KEY")

    class BearerAuth(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] != api_key:
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    starlette_app = mcp.streamable_http_app()

    if api_key:
        starlette_app.add_middleware(BearerAuth)

    starlette_app.routes.append(
        Route("/health", lambda r: PlainTextResponse("ok"))
    )

    config = uvicorn.Config(
        starlette_app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_level="info",
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run resource-forecast MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    parser.add_argument("--log-level", default="INFO", help="Root log level")
    args = parser.parse_args()
    _ENV_FILE = args.env_file
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    transport = args.transport
    if transport is None:
        transport = "streamable-http" if os.getenv("PORT") else "stdio"

    if transport == "streamable-http":
        import anyio
        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
