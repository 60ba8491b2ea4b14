"""
Start List API Routes
Generation, official selection and incremental editing of start lists.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from startlist.database import get_session
from startlist.models.start_list import StartList
from startlist.services import start_list_editor as editor
from startlist.services.directory import (
    get_active_registrations,
    has_recorded_results,
    resolve_member_club,
    resolve_member_name,
)
from startlist.services.official_selector import get_current_start_list, set_official
from startlist.services.start_list_errors import InvalidStartListParameterError
from startlist.services.start_list_schema import (
    DEFAULT_CLASS_START_ORDER,
    DEFAULT_FIRST_START_TIME,
    DEFAULT_MAX_SHOOTERS_PER_TEAM,
    DEFAULT_START_INTERVAL_MINUTES,
    UNKNOWN_CLUB_NAME,
    UNKNOWN_SHOOTER_NAME,
    MemberSortOrder,
    StartListConfiguration,
    StartListSettings,
    StartListShooter,
    StartListSummary,
    StartListTeam,
    TeamFormat,
    is_unknown_club,
    summarize_configuration,
)
from startlist.services.start_list_store import (
    create_start_list,
    delete_start_list,
    edit_start_list,
    get_competition_or_error,
    get_start_list_or_error,
    list_start_lists,
    read_configuration,
    repair_club_data,
    search_available_shooters,
)
from startlist.services.start_list_validation import validate_configuration
from startlist.utils.start_list_guards import start_list_errors_as_http

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class StartListGenerationRequest(BaseModel):
    team_format: TeamFormat = TeamFormat.mixed
    max_shooters_per_team: int = DEFAULT_MAX_SHOOTERS_PER_TEAM
    start_interval: int = DEFAULT_START_INTERVAL_MINUTES
    first_start_time: str = DEFAULT_FIRST_START_TIME
    member_sort_order: MemberSortOrder = MemberSortOrder.first_name
    class_start_order: str = DEFAULT_CLASS_START_ORDER
    generated_by: Optional[str] = None
    notes: Optional[str] = None


class StartListGenerationResponse(BaseModel):
    success: bool = True
    message: str
    start_list_id: int
    summary: StartListSummary


class StartListInfo(BaseModel):
    id: int
    competition_id: int
    team_format: str
    generated_at: datetime
    generated_by: Optional[str] = None
    status: str  # "official" | "draft"
    is_official: bool
    team_count: int
    total_shooters: int


class StartListDetailResponse(BaseModel):
    start_list_id: int
    competition_id: int
    is_official: bool
    configuration: StartListConfiguration


class OfficialRequest(BaseModel):
    is_official: bool = True


class OfficialResponse(BaseModel):
    success: bool = True
    message: str
    start_list_id: int
    is_official: bool


class MutationResponse(BaseModel):
    success: bool = True
    message: str
    configuration: StartListConfiguration


class AddShooterRequest(BaseModel):
    team_number: int
    member_id: int
    weapon_class: str


class ShooterResponse(MutationResponse):
    shooter: StartListShooter


class MoveShooterRequest(BaseModel):
    target_team_number: int


class BulkMoveRequest(BaseModel):
    member_ids: List[int]
    target_team_number: int


class BulkMoveResponse(MutationResponse):
    moved_count: int


class WeaponClassRequest(BaseModel):
    weapon_class: str


class TeamTimesRequest(BaseModel):
    start_time: str
    end_time: str


class TeamResponse(MutationResponse):
    team: StartListTeam


class ValidationResponse(BaseModel):
    is_valid: bool
    errors: List[str]
    warnings: List[str]


class AvailableShooter(BaseModel):
    member_id: int
    name: str
    club: str
    weapon_class: str


class RepairClubsResponse(BaseModel):
    success: bool = True
    message: str
    updated_count: int


def _info(start_list: StartList) -> StartListInfo:
    team_count = 0
    total_shooters = 0
    if start_list.configuration_data:
        try:
            configuration = read_configuration(start_list)
            team_count = len(configuration.teams)
            total_shooters = configuration.total_shooters
        except InvalidStartListParameterError:
            logger.warning(f"Start list {start_list.id} has unreadable configuration data")
    return StartListInfo(
        id=start_list.id,
        competition_id=start_list.competition_id,
        team_format=start_list.team_format,
        generated_at=start_list.generated_at,
        generated_by=start_list.generated_by,
        status=start_list.status,
        is_official=start_list.is_official,
        team_count=team_count,
        total_shooters=total_shooters,
    )


# ============================================================================
# Generation / listing / official selection
# ============================================================================


@router.post(
    "/competitions/{competition_id}/start-lists",
    response_model=StartListGenerationResponse,
    status_code=201,
)
def generate_start_list(
    competition_id: int,
    request: StartListGenerationRequest,
    session: Session = Depends(get_session),
):
    """
    Generate a new draft start list from the competition's active registrations.

    Team formats: Mixed, SeparatedByClass, ABCombined, BCCombined.
    """
    settings = StartListSettings(
        format=request.team_format,
        max_shooters_per_team=request.max_shooters_per_team,
        start_interval=request.start_interval,
        first_start_time=request.first_start_time,
        member_sort_order=request.member_sort_order,
        class_start_order=request.class_start_order,
    )
    with start_list_errors_as_http():
        start_list, configuration = create_start_list(
            session, competition_id, settings, generated_by=request.generated_by, notes=request.notes
        )

    summary = summarize_configuration(configuration)
    return StartListGenerationResponse(
        message=f"Start list generated with {summary.team_count} teams and {summary.total_shooters} shooters",
        start_list_id=start_list.id,
        summary=summary,
    )


@router.get("/competitions/{competition_id}/start-lists", response_model=List[StartListInfo])
def get_start_lists(competition_id: int, session: Session = Depends(get_session)):
    """All start lists of a competition, newest first"""
    with start_list_errors_as_http():
        get_competition_or_error(session, competition_id)
    return [_info(start_list) for start_list in list_start_lists(session, competition_id)]


@router.get("/competitions/{competition_id}/start-lists/current", response_model=StartListDetailResponse)
def get_current(competition_id: int, session: Session = Depends(get_session)):
    """The official list, or the most recently generated one when none is official"""
    with start_list_errors_as_http():
        start_list = get_current_start_list(session, competition_id)
        if not start_list:
            raise HTTPException(status_code=404, detail="No start list exists for this competition")
        configuration = read_configuration(start_list)

    return StartListDetailResponse(
        start_list_id=start_list.id,
        competition_id=start_list.competition_id,
        is_official=start_list.is_official,
        configuration=configuration,
    )


@router.patch("/competitions/{competition_id}/start-lists/{start_list_id}/official", response_model=OfficialResponse)
def set_official_start_list(
    competition_id: int,
    start_list_id: int,
    request: OfficialRequest,
    session: Session = Depends(get_session),
):
    """
    Publish or unpublish a start list.

    Publishing first unpublishes every other list of the competition.
    """
    with start_list_errors_as_http():
        start_list = set_official(session, competition_id, start_list_id, request.is_official)

    return OfficialResponse(
        message="Start list published" if start_list.is_official else "Start list unpublished",
        start_list_id=start_list.id,
        is_official=start_list.is_official,
    )


# ============================================================================
# Single start list
# ============================================================================


@router.get("/start-lists/{start_list_id}", response_model=StartListDetailResponse)
def get_start_list_for_editing(start_list_id: int, session: Session = Depends(get_session)):
    with start_list_errors_as_http():
        start_list = get_start_list_or_error(session, start_list_id)
        configuration = read_configuration(start_list)

    return StartListDetailResponse(
        start_list_id=start_list.id,
        competition_id=start_list.competition_id,
        is_official=start_list.is_official,
        configuration=configuration,
    )


@router.delete("/start-lists/{start_list_id}", status_code=204)
def remove_start_list(start_list_id: int, session: Session = Depends(get_session)):
    with start_list_errors_as_http():
        delete_start_list(session, start_list_id)
    return None


@router.put("/start-lists/{start_list_id}/configuration", response_model=MutationResponse)
def replace_start_list_configuration(
    start_list_id: int,
    replacement: StartListConfiguration,
    session: Session = Depends(get_session),
):
    """
    Replace the whole configuration.

    Derived team fields are recomputed; structural errors are rejected with
    a per-item error list.
    """
    with start_list_errors_as_http():
        _, configuration = edit_start_list(
            session, start_list_id, lambda sl, config: editor.replace_configuration(config, replacement)
        )
    return MutationResponse(message="Start list updated", configuration=configuration)


@router.get("/start-lists/{start_list_id}/validation", response_model=ValidationResponse)
def validate_start_list(start_list_id: int, session: Session = Depends(get_session)):
    with start_list_errors_as_http():
        start_list = get_start_list_or_error(session, start_list_id)
        result = validate_configuration(read_configuration(start_list))
    return ValidationResponse(is_valid=result.is_valid, errors=result.errors, warnings=result.warnings)


@router.get("/start-lists/{start_list_id}/available-shooters", response_model=List[AvailableShooter])
def get_available_shooters(
    start_list_id: int,
    query: str = Query("", description="Part of the shooter's name (min 2 characters)"),
    session: Session = Depends(get_session),
):
    """Registered shooters of the competition that are not in this list yet"""
    with start_list_errors_as_http():
        start_list = get_start_list_or_error(session, start_list_id)
        return search_available_shooters(session, start_list, query)


@router.post("/start-lists/{start_list_id}/repair-clubs", response_model=RepairClubsResponse)
def repair_clubs(start_list_id: int, session: Session = Depends(get_session)):
    """Fill in missing shooter clubs from registrations / member directory"""
    with start_list_errors_as_http():
        updated = repair_club_data(session, start_list_id)

    if updated:
        message = f"Updated club for {updated} shooters"
    else:
        message = "No club data needed updating"
    return RepairClubsResponse(message=message, updated_count=updated)


# ============================================================================
# Shooter edits
# ============================================================================


def _resolve_shooter_identity(session: Session, competition_id: int, member_id: int) -> Dict[str, Any]:
    """Display name and club from the competition registration, else the member directory."""
    name = None
    club = None
    for reg in get_active_registrations(session, competition_id):
        if reg.member_id == member_id:
            name = name or reg.member_name
            if is_unknown_club(club) and not is_unknown_club(reg.club_name):
                club = reg.club_name
    name = name or resolve_member_name(session, member_id) or UNKNOWN_SHOOTER_NAME
    if is_unknown_club(club):
        club = resolve_member_club(session, member_id) or UNKNOWN_CLUB_NAME
    return {"name": name, "club": club}


@router.post("/start-lists/{start_list_id}/shooters", response_model=ShooterResponse, status_code=201)
def add_shooter(start_list_id: int, request: AddShooterRequest, session: Session = Depends(get_session)):
    def operation(start_list: StartList, configuration: StartListConfiguration):
        identity = _resolve_shooter_identity(session, start_list.competition_id, request.member_id)
        return editor.add_shooter(
            configuration,
            request.team_number,
            request.member_id,
            request.weapon_class,
            name=identity["name"],
            club=identity["club"],
        )

    with start_list_errors_as_http():
        shooter, configuration = edit_start_list(session, start_list_id, operation)
    return ShooterResponse(message="Shooter added", shooter=shooter, configuration=configuration)


@router.delete("/start-lists/{start_list_id}/shooters/{member_id}", response_model=MutationResponse)
def remove_shooter(start_list_id: int, member_id: int, session: Session = Depends(get_session)):
    """Remove a shooter. Rejected once results are recorded for the shooter."""

    def operation(start_list: StartList, configuration: StartListConfiguration):
        return editor.remove_shooter(
            configuration,
            member_id,
            lambda mid: has_recorded_results(session, start_list.competition_id, mid),
        )

    with start_list_errors_as_http():
        _, configuration = edit_start_list(session, start_list_id, operation)
    return MutationResponse(message="Shooter removed", configuration=configuration)


@router.post("/start-lists/{start_list_id}/shooters/bulk-move", response_model=BulkMoveResponse)
def bulk_move_shooters(start_list_id: int, request: BulkMoveRequest, session: Session = Depends(get_session)):
    """Move several shooters; missing ids and shooters already in the target team are skipped"""
    with start_list_errors_as_http():
        moved, configuration = edit_start_list(
            session,
            start_list_id,
            lambda sl, config: editor.bulk_move_shooters(config, request.member_ids, request.target_team_number),
        )
    return BulkMoveResponse(
        message=f"Moved {moved} shooters to team {request.target_team_number}",
        moved_count=moved,
        configuration=configuration,
    )


@router.post("/start-lists/{start_list_id}/shooters/{member_id}/move", response_model=ShooterResponse)
def move_shooter(
    start_list_id: int,
    member_id: int,
    request: MoveShooterRequest,
    session: Session = Depends(get_session),
):
    with start_list_errors_as_http():
        shooter, configuration = edit_start_list(
            session,
            start_list_id,
            lambda sl, config: editor.move_shooter_to_team(config, member_id, request.target_team_number),
        )
    return ShooterResponse(
        message=f"Shooter moved to team {request.target_team_number}",
        shooter=shooter,
        configuration=configuration,
    )


@router.patch("/start-lists/{start_list_id}/shooters/{member_id}", response_model=ShooterResponse)
def update_shooter_weapon_class(
    start_list_id: int,
    member_id: int,
    request: WeaponClassRequest,
    session: Session = Depends(get_session),
):
    with start_list_errors_as_http():
        shooter, configuration = edit_start_list(
            session,
            start_list_id,
            lambda sl, config: editor.update_shooter_weapon_class(config, member_id, request.weapon_class),
        )
    return ShooterResponse(message="Weapon class updated", shooter=shooter, configuration=configuration)


# ============================================================================
# Team edits
# ============================================================================


@router.post("/start-lists/{start_list_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(start_list_id: int, request: TeamTimesRequest, session: Session = Depends(get_session)):
    with start_list_errors_as_http():
        team, configuration = edit_start_list(
            session,
            start_list_id,
            lambda sl, config: editor.create_team(config, request.start_time, request.end_time),
        )
    return TeamResponse(message=f"Team {team.team_number} created", team=team, configuration=configuration)


@router.patch("/start-lists/{start_list_id}/teams/{team_number}", response_model=TeamResponse)
def update_team_times(
    start_list_id: int,
    team_number: int,
    request: TeamTimesRequest,
    session: Session = Depends(get_session),
):
    with start_list_errors_as_http():
        team, configuration = edit_start_list(
            session,
            start_list_id,
            lambda sl, config: editor.update_team_times(config, team_number, request.start_time, request.end_time),
        )
    return TeamResponse(message=f"Team {team_number} times updated", team=team, configuration=configuration)


@router.delete("/start-lists/{start_list_id}/teams/{team_number}", response_model=MutationResponse)
def delete_team(start_list_id: int, team_number: int, session: Session = Depends(get_session)):
    """Delete an empty team; remaining teams are renumbered 1..N"""
    with start_list_errors_as_http():
        _, configuration = edit_start_list(
            session,
            start_list_id,
            lambda sl, config: editor.delete_team(config, team_number),
        )
    return MutationResponse(message=f"Team {team_number} deleted", configuration=configuration)
