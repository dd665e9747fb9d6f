from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import state
from errors import (
    DUPLICATE_EMAIL,
    DUPLICATE_NAME,
    ID_NOT_FOUND,
    INVALID_STATE,
    PortalError,
)
from schema import PERIODS

# -------------------------------------------------------------------------
# FastAPI app
# -------------------------------------------------------------------------
app = FastAPI(title="Games League Portal")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Health check."""
    return {"ok": True, "current_day": state.get_current_day()}


# -------------------------------------------------------------------------
# Pydantic request models
# -------------------------------------------------------------------------
class CreatePlayerRequest(BaseModel):
    display_name: str
    email: str
    name: Optional[str] = None
    phone: str = ""


class DisplayNameRequest(BaseModel):
    display_name: str


class CreateLeagueRequest(BaseModel):
    owner_id: int
    name: str
    game_type: str = Field(..., description="CHESS / WORDLE / SUDOKU / CROSSWORD / TRIVIA")


class LeagueNameRequest(BaseModel):
    name: str


class EmailRequest(BaseModel):
    email: str


class PlayerRefRequest(BaseModel):
    player_id: int


class MemberActiveRequest(BaseModel):
    active: bool


class GameReportRequest(BaseModel):
    day: int
    player_id: int
    report: str


class DayResultsRequest(BaseModel):
    day: int
    scores: List[int] = Field(..., description="one score per roster member, in roster order")


class DayRequest(BaseModel):
    day: int


class SnapshotRequest(BaseModel):
    path: Optional[str] = Field(None, description="snapshot file; defaults to GAMES_LEAGUE_DB_PATH")


# -------------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------------
_STATUS_BY_CODE: Dict[str, int] = {
    ID_NOT_FOUND: 404,
    DUPLICATE_EMAIL: 409,
    DUPLICATE_NAME: 409,
    INVALID_STATE: 409,
}


def _portal_error_response(error: PortalError) -> JSONResponse:
    payload = {
        "ok": False,
        "error": {
            "code": error.code,
            "message": error.message,
            "details": error.details,
        },
    }
    return JSONResponse(status_code=_STATUS_BY_CODE.get(error.code, 400), content=payload)


def _player_payload(player_id: int) -> Dict[str, Any]:
    return {
        "player_id": player_id,
        "display_name": state.get_player_display_name(player_id),
        "email": state.get_player_email(player_id),
        "name": state.get_player_name(player_id),
        "phone": state.get_player_phone(player_id),
        "join_day": state.get_player_join_day(player_id),
        "deactivated": state.is_deactivated_player(player_id),
        "leagues": state.get_player_leagues(player_id),
        "owned_leagues": state.get_player_owned_leagues(player_id),
        "invites": state.get_player_invites(player_id),
    }


def _league_payload(league_id: int) -> Dict[str, Any]:
    return {
        "league_id": league_id,
        "name": state.get_league_name(league_id),
        "game_type": state.get_league_game_type(league_id),
        "status": state.get_league_status(league_id).value,
        "start_day": state.get_league_start_day(league_id),
        "close_day": state.get_league_close_day(league_id),
        "players": state.get_league_players(league_id),
        "owners": state.get_league_owners(league_id),
        "email_invites": state.get_league_email_invites(league_id),
        "player_invites": state.get_league_player_invites(league_id),
    }


# -------------------------------------------------------------------------
# Players
# -------------------------------------------------------------------------
@app.post("/api/players")
async def api_create_player(req: CreatePlayerRequest):
    try:
        player_id = state.create_player(req.display_name, req.email, req.name, req.phone)
        return {"ok": True, "player_id": player_id}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.get("/api/players")
async def api_list_players():
    return {"ok": True, "player_ids": state.get_player_ids()}


@app.get("/api/players/lookup")
async def api_lookup_player(email: str):
    return {"ok": True, "player_id": state.lookup_by_email(email)}


@app.get("/api/players/{player_id}")
async def api_get_player(player_id: int):
    try:
        return {"ok": True, "player": _player_payload(player_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/players/{player_id}/display-name")
async def api_update_display_name(player_id: int, req: DisplayNameRequest):
    try:
        state.update_player_display_name(player_id, req.display_name)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/players/{player_id}/deactivate")
async def api_deactivate_player(player_id: int):
    try:
        changed = state.deactivate_player(player_id)
        return {"ok": True, "changed": changed}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.get("/api/players/{player_id}/stats")
async def api_player_stats(player_id: int):
    try:
        return {
            "ok": True,
            "rounds_played": state.get_player_rounds_played(player_id),
            "rounds_percentage": state.get_player_rounds_percentage(player_id),
        }
    except PortalError as exc:
        return _portal_error_response(exc)


# -------------------------------------------------------------------------
# Leagues
# -------------------------------------------------------------------------
@app.post("/api/leagues")
async def api_create_league(req: CreateLeagueRequest):
    try:
        league_id = state.create_league(req.owner_id, req.name, req.game_type)
        return {"ok": True, "league_id": league_id}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.get("/api/leagues")
async def api_list_leagues():
    return {"ok": True, "league_ids": state.get_league_ids()}


@app.get("/api/leagues/{league_id}")
async def api_get_league(league_id: int):
    try:
        return {"ok": True, "league": _league_payload(league_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.delete("/api/leagues/{league_id}")
async def api_remove_league(league_id: int):
    try:
        state.remove_league(league_id)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/name")
async def api_rename_league(league_id: int, req: LeagueNameRequest):
    try:
        state.update_league_name(league_id, req.name)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/start")
async def api_start_league(league_id: int):
    try:
        return {"ok": True, "start_day": state.start_league(league_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/close")
async def api_close_league(league_id: int):
    try:
        return {"ok": True, "close_day": state.close_league(league_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/reset")
async def api_reset_league(league_id: int):
    try:
        state.reset_league(league_id)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/clone")
async def api_clone_league(league_id: int, req: LeagueNameRequest):
    try:
        return {"ok": True, "league_id": state.clone_league(league_id, req.name)}
    except PortalError as exc:
        return _portal_error_response(exc)


# -------------------------------------------------------------------------
# Membership & ownership
# -------------------------------------------------------------------------
@app.post("/api/leagues/{league_id}/invites")
async def api_invite(league_id: int, req: EmailRequest):
    try:
        return {"ok": True, "invite": state.invite_player_to_league(league_id, req.email)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/invites/remove")
async def api_remove_invite(league_id: int, req: EmailRequest):
    try:
        state.remove_invite_from_league(league_id, req.email)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/invites/accept")
async def api_accept_invite(league_id: int, req: PlayerRefRequest):
    try:
        state.accept_invite_to_league(league_id, req.player_id)
        return {"ok": True, "players": state.get_league_players(league_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/owners")
async def api_add_owner(league_id: int, req: PlayerRefRequest):
    try:
        state.add_owner(league_id, req.player_id)
        return {"ok": True, "owners": state.get_league_owners(league_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/owners/remove")
async def api_remove_owner(league_id: int, req: PlayerRefRequest):
    try:
        state.remove_owner(league_id, req.player_id)
        return {"ok": True, "owners": state.get_league_owners(league_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/players/{player_id}/active")
async def api_set_member_active(league_id: int, player_id: int, req: MemberActiveRequest):
    try:
        if req.active:
            state.set_league_player_active(league_id, player_id)
        else:
            state.set_league_player_inactive(league_id, player_id)
        return {"ok": True, "active": state.is_league_player_active(league_id, player_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


# -------------------------------------------------------------------------
# Results & standings
# -------------------------------------------------------------------------
@app.post("/api/leagues/{league_id}/reports")
async def api_register_report(league_id: int, req: GameReportRequest):
    try:
        state.register_game_report(req.day, league_id, req.player_id, req.report)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.get("/api/leagues/{league_id}/reports")
async def api_get_report(league_id: int, day: int, player_id: int):
    try:
        return {"ok": True, "report": state.get_game_report(day, league_id, player_id)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/results")
async def api_register_results(league_id: int, req: DayResultsRequest):
    try:
        state.register_day_results(req.day, league_id, req.scores)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/leagues/{league_id}/results/void")
async def api_void_results(league_id: int, req: DayRequest):
    try:
        state.void_day_results(req.day, league_id)
        return {"ok": True}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.get("/api/leagues/{league_id}/standings/{period}")
async def api_standings(league_id: int, period: str, day: int):
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of {list(PERIODS)}")
    try:
        return {"ok": True, "standings": state.get_period_view(league_id, period, day)}
    except PortalError as exc:
        return _portal_error_response(exc)


# -------------------------------------------------------------------------
# Clock & whole store
# -------------------------------------------------------------------------
@app.get("/api/clock")
async def api_get_clock():
    return {"ok": True, "current_day": state.get_current_day()}


@app.post("/api/clock")
async def api_set_clock(req: DayRequest):
    try:
        return {"ok": True, "current_day": state.set_current_day(req.day)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/clock/increment")
async def api_increment_clock():
    return {"ok": True, "current_day": state.increment_day()}


@app.post("/api/state/save")
async def api_save_state(req: SnapshotRequest):
    try:
        return {"ok": True, "path": state.save_portal_data(req.path)}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/state/load")
async def api_load_state(req: SnapshotRequest):
    try:
        state.load_portal_data(req.path)
        return {"ok": True, "current_day": state.get_current_day()}
    except PortalError as exc:
        return _portal_error_response(exc)


@app.post("/api/state/erase")
async def api_erase_state():
    state.erase_portal_data()
    return {"ok": True}


@app.get("/api/state/summary")
async def api_state_summary():
    snapshot = state.export_full_state_snapshot()
    return {
        "ok": True,
        "current_day": snapshot["current_day"],
        "players": len(snapshot["players"]),
        "leagues": len(snapshot["leagues"]),
    }
