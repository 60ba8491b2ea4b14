"""
Start list persistence: generate, load, edit and delete StartList rows.

Edits are read-modify-write of the whole configuration document inside one
session. Concurrent edits of the same list are last-writer-wins.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, TypeVar

from sqlmodel import Session, select

from startlist.models.competition import Competition
from startlist.models.start_list import StartList
from startlist.services.directory import get_active_registrations, get_registrations, resolve_member_club
from startlist.services.start_list_errors import (
    InvalidStartListParameterError,
    StartListNotFoundError,
)
from startlist.services.start_list_schema import (
    StartListConfiguration,
    StartListSettings,
    dump_configuration,
    is_unknown_club,
    load_configuration,
)
from startlist.services.team_partitioner import generate

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_SEARCH_QUERY_LENGTH = 2
MAX_SEARCH_RESULTS = 20


def get_competition_or_error(session: Session, competition_id: int) -> Competition:
    if competition_id is None or competition_id <= 0:
        raise InvalidStartListParameterError(f"Invalid competition id: {competition_id}")
    competition = session.get(Competition, competition_id)
    if not competition:
        raise StartListNotFoundError(f"Competition {competition_id} not found")
    return competition


def get_start_list_or_error(session: Session, start_list_id: int, competition_id: Optional[int] = None) -> StartList:
    if start_list_id is None or start_list_id <= 0:
        raise InvalidStartListParameterError(f"Invalid start list id: {start_list_id}")
    start_list = session.get(StartList, start_list_id)
    if not start_list:
        raise StartListNotFoundError(f"Start list {start_list_id} not found")
    if competition_id and start_list.competition_id != competition_id:
        raise StartListNotFoundError(
            f"Start list {start_list_id} does not belong to competition {competition_id}"
        )
    return start_list


def read_configuration(start_list: StartList) -> StartListConfiguration:
    """
    Raises:
        InvalidStartListParameterError: the list has no (readable) configuration
    """
    if not start_list.configuration_data:
        raise InvalidStartListParameterError(f"Start list {start_list.id} has no configuration data")
    try:
        return load_configuration(start_list.configuration_data)
    except ValueError as e:
        raise InvalidStartListParameterError(f"Start list {start_list.id} configuration is unreadable: {e}")


def write_configuration(session: Session, start_list: StartList, configuration: StartListConfiguration) -> None:
    """Stage the configuration on the row; the caller commits."""
    start_list.configuration_data = dump_configuration(configuration)
    start_list.team_format = configuration.settings.format.value
    start_list.updated_at = datetime.now(timezone.utc)
    session.add(start_list)


def list_start_lists(session: Session, competition_id: int) -> List[StartList]:
    """All start lists of a competition, most recently generated first."""
    return session.exec(
        select(StartList)
        .where(StartList.competition_id == competition_id)
        .order_by(StartList.generated_at.desc(), StartList.id.desc())
    ).all()


def create_start_list(
    session: Session,
    competition_id: int,
    settings: StartListSettings,
    generated_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> Tuple[StartList, StartListConfiguration]:
    """
    Generate a new (draft) start list from the competition's active registrations.

    Raises:
        StartListNotFoundError: competition not found
        InvalidStartListParameterError: no registrations, or bad generation settings
    """
    get_competition_or_error(session, competition_id)

    registrations = get_registrations(session, competition_id)
    if not registrations:
        raise InvalidStartListParameterError("No registrations found for this competition")

    try:
        configuration = generate(registrations, settings)
    except ValueError as e:
        raise InvalidStartListParameterError(str(e))

    start_list = StartList(
        competition_id=competition_id,
        generated_at=configuration.settings.generated,
        generated_by=generated_by,
        notes=notes,
    )
    write_configuration(session, start_list, configuration)
    session.commit()
    session.refresh(start_list)

    logger.info(
        "Created start list %s for competition %s: %d teams, %d shooters",
        start_list.id,
        competition_id,
        len(configuration.teams),
        configuration.total_shooters,
    )
    return start_list, configuration


def edit_start_list(
    session: Session,
    start_list_id: int,
    operation: Callable[[StartList, StartListConfiguration], T],
) -> Tuple[T, StartListConfiguration]:
    """
    Load a list, apply one editor operation and persist the result.

    Nothing is written when the operation raises.
    """
    start_list = get_start_list_or_error(session, start_list_id)
    configuration = read_configuration(start_list)

    result = operation(start_list, configuration)

    write_configuration(session, start_list, configuration)
    session.commit()
    session.refresh(start_list)
    logger.info(f"Saved edit of start list {start_list_id} ({len(configuration.teams)} teams)")
    return result, configuration


def delete_start_list(session: Session, start_list_id: int) -> None:
    start_list = get_start_list_or_error(session, start_list_id)
    session.delete(start_list)
    session.commit()
    logger.info("Deleted start list %s", start_list_id)


def search_available_shooters(session: Session, start_list: StartList, query: str) -> List[dict]:
    """
    Registrations of the list's competition whose shooter is not in the list
    yet and whose name contains query (case-insensitive).
    """
    if not query or len(query.strip()) < MIN_SEARCH_QUERY_LENGTH:
        return []

    existing = read_configuration(start_list).member_ids() if start_list.configuration_data else set()
    needle = query.strip().casefold()

    shooters = []
    for reg in get_active_registrations(session, start_list.competition_id):
        if reg.member_id in existing or needle not in (reg.member_name or "").casefold():
            continue
        shooters.append(
            {
                "member_id": reg.member_id,
                "name": reg.member_name or "",
                "club": reg.club_name or "",
                "weapon_class": reg.weapon_class,
            }
        )
        if len(shooters) >= MAX_SEARCH_RESULTS:
            break
    return shooters


def repair_club_data(session: Session, start_list_id: int) -> int:
    """
    Fill blank/unknown shooter clubs from the competition's registrations,
    falling back to the member directory.

    Returns:
        Number of shooters updated (nothing is written when 0)
    """
    start_list = get_start_list_or_error(session, start_list_id)
    configuration = read_configuration(start_list)

    clubs_by_member = {}
    for reg in get_active_registrations(session, start_list.competition_id):
        if not is_unknown_club(reg.club_name):
            clubs_by_member.setdefault(reg.member_id, reg.club_name)

    updated = 0
    for team in configuration.teams:
        for shooter in team.shooters:
            if not is_unknown_club(shooter.club):
                continue
            club = clubs_by_member.get(shooter.member_id) or resolve_member_club(session, shooter.member_id)
            if not is_unknown_club(club):
                shooter.club = club
                updated += 1

    if updated:
        write_configuration(session, start_list, configuration)
        session.commit()
        logger.info("Repaired club data for %d shooters in start list %s", updated, start_list_id)

    return updated
