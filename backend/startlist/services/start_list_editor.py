"""
Start List Editor: validation and mutation logic for generated start lists

Each operation takes a StartListConfiguration, validates its own
preconditions first and only then mutates the configuration in place, so a
raised error always leaves the configuration unchanged. After every mutation
the touched teams satisfy:

1. **Sequential positions**: shooter positions are exactly 1..shooter_count
2. **Counts in sync**: shooter_count == len(shooters)
3. **Weapon classes in sync**: sorted distinct classes of the team's shooters
4. **One team per shooter**: a member id appears at most once in the list

Persisting the result is the caller's job (see start_list_store).
"""

import logging
from typing import Callable, Iterable, List, Optional

from startlist.services.start_list_errors import (
    InvalidStartListParameterError,
    ShooterHasResultsError,
    StartListConflictError,
    StartListNotFoundError,
)
from startlist.services.start_list_schema import (
    StartListConfiguration,
    StartListShooter,
    StartListTeam,
    is_valid_clock,
)
from startlist.services.start_list_validation import validate_configuration

logger = logging.getLogger(__name__)


# ============================================================================
# Invariant repair helpers
# ============================================================================


def renumber_positions(team: StartListTeam) -> None:
    """Positions become 1..N in the shooters' current relative order."""
    for position, shooter in enumerate(team.shooters, start=1):
        shooter.position = position


def refresh_team(team: StartListTeam) -> None:
    """Re-derive positions, shooter_count and weapon_classes from the shooter list."""
    renumber_positions(team)
    team.shooter_count = len(team.shooters)
    team.weapon_classes = sorted({shooter.weapon_class for shooter in team.shooters})


def renumber_teams(configuration: StartListConfiguration) -> None:
    """Team numbers become 1..N ordered by their current team number."""
    configuration.teams.sort(key=lambda team: team.team_number)
    for number, team in enumerate(configuration.teams, start=1):
        team.team_number = number


def normalize_configuration(configuration: StartListConfiguration) -> StartListConfiguration:
    """Re-establish every derived field of every team (positions follow current position order)."""
    for team in configuration.teams:
        team.shooters.sort(key=lambda shooter: shooter.position)
        refresh_team(team)
    renumber_teams(configuration)
    return configuration


# ============================================================================
# Lookups / parameter checks
# ============================================================================


def _require_positive(value: int, label: str) -> None:
    if value is None or value <= 0:
        raise InvalidStartListParameterError(f"Invalid {label}: {value}")


def _require_weapon_class(weapon_class: Optional[str]) -> str:
    if not weapon_class or not weapon_class.strip():
        raise InvalidStartListParameterError("Weapon class is required")
    return weapon_class.strip()


def _require_times(start_time: str, end_time: str) -> None:
    for label, value in (("start time", start_time), ("end time", end_time)):
        if not is_valid_clock(value):
            raise InvalidStartListParameterError(f"Invalid {label} '{value}', expected HH:MM")


def get_team_or_error(configuration: StartListConfiguration, team_number: int) -> StartListTeam:
    team = configuration.find_team(team_number)
    if team is None:
        raise StartListNotFoundError(f"Team {team_number} not found")
    return team


def _detach(team: StartListTeam, shooter: StartListShooter) -> None:
    team.shooters = [s for s in team.shooters if s is not shooter]


def _holds_member(team: StartListTeam, member_id: int) -> bool:
    return any(s.member_id == member_id for s in team.shooters)


def _find_shooter_or_error(configuration: StartListConfiguration, member_id: int):
    team, shooter = configuration.find_shooter(member_id)
    if shooter is None:
        raise StartListNotFoundError(f"Shooter {member_id} is not in this start list")
    return team, shooter


# ============================================================================
# Shooter operations
# ============================================================================


def add_shooter(
    configuration: StartListConfiguration,
    team_number: int,
    member_id: int,
    weapon_class: str,
    name: str = "",
    club: str = "",
) -> StartListShooter:
    """
    Append a shooter to a team at position shooter_count + 1.

    Raises:
        InvalidStartListParameterError: non-positive ids or empty weapon class
        StartListConflictError: shooter already registered in this list
        StartListNotFoundError: team does not exist
    """
    _require_positive(team_number, "team number")
    _require_positive(member_id, "member id")
    weapon_class = _require_weapon_class(weapon_class)

    if member_id in configuration.member_ids():
        raise StartListConflictError("Shooter is already registered in this start list")

    team = get_team_or_error(configuration, team_number)

    shooter = StartListShooter(
        position=len(team.shooters) + 1,
        name=name,
        club=club,
        weapon_class=weapon_class,
        member_id=member_id,
    )
    team.shooters.append(shooter)
    team.shooter_count = len(team.shooters)
    if weapon_class not in team.weapon_classes:
        team.weapon_classes = sorted(team.weapon_classes + [weapon_class])

    return shooter


def remove_shooter(
    configuration: StartListConfiguration,
    member_id: int,
    has_recorded_results: Callable[[int], bool],
) -> StartListTeam:
    """
    Remove a shooter from whichever team holds it and close the position gap.

    Args:
        has_recorded_results: Collaborator check, called with member_id

    Returns:
        The team the shooter was removed from

    Raises:
        StartListNotFoundError: shooter not in the list
        ShooterHasResultsError: results are already recorded for the shooter
    """
    _require_positive(member_id, "member id")
    team, shooter = _find_shooter_or_error(configuration, member_id)

    if has_recorded_results(member_id):
        raise ShooterHasResultsError("Cannot remove shooter: results are already recorded for this shooter")

    _detach(team, shooter)
    refresh_team(team)
    return team


def move_shooter_to_team(
    configuration: StartListConfiguration,
    member_id: int,
    target_team_number: int,
) -> StartListShooter:
    """
    Move a shooter to the end of another team.

    Raises:
        StartListNotFoundError: shooter or target team not found
        StartListConflictError: shooter is already in the target team
    """
    _require_positive(member_id, "member id")
    _require_positive(target_team_number, "team number")

    source, shooter = _find_shooter_or_error(configuration, member_id)
    target = get_team_or_error(configuration, target_team_number)
    # Covers a second class entry of the same shooter already in the target team
    if source is target or _holds_member(target, member_id):
        raise StartListConflictError(f"Shooter is already in team {target_team_number}")

    _detach(source, shooter)
    shooter.position = len(target.shooters) + 1
    target.shooters.append(shooter)

    refresh_team(source)
    refresh_team(target)
    return shooter


def bulk_move_shooters(
    configuration: StartListConfiguration,
    member_ids: Iterable[int],
    target_team_number: int,
) -> int:
    """
    Move several shooters to the end of one team.

    Ids that are missing or already in the target team are skipped. Touched
    teams are refreshed once, after all moves.

    Returns:
        Number of shooters moved

    Raises:
        InvalidStartListParameterError: no member ids given
        StartListNotFoundError: target team not found
    """
    member_ids = list(member_ids or [])
    if not member_ids:
        raise InvalidStartListParameterError("No shooters selected")
    _require_positive(target_team_number, "team number")
    target = get_team_or_error(configuration, target_team_number)

    touched: List[StartListTeam] = []
    moved = 0
    for member_id in member_ids:
        source, shooter = configuration.find_shooter(member_id)
        if shooter is None or source is target or _holds_member(target, member_id):
            logger.warning(f"Bulk move: skipping shooter {member_id} (not found or already in team {target_team_number})")
            continue

        _detach(source, shooter)
        shooter.position = len(target.shooters) + 1
        target.shooters.append(shooter)
        if not any(team is source for team in touched):
            touched.append(source)
        moved += 1

    for team in touched + [target]:
        refresh_team(team)

    return moved


def update_shooter_weapon_class(
    configuration: StartListConfiguration,
    member_id: int,
    weapon_class: str,
) -> StartListShooter:
    """Change a shooter's weapon class; only that shooter's team is refreshed."""
    _require_positive(member_id, "member id")
    weapon_class = _require_weapon_class(weapon_class)
    team, shooter = _find_shooter_or_error(configuration, member_id)

    shooter.weapon_class = weapon_class
    team.weapon_classes = sorted({s.weapon_class for s in team.shooters})
    return shooter


# ============================================================================
# Team operations
# ============================================================================


def create_team(configuration: StartListConfiguration, start_time: str, end_time: str) -> StartListTeam:
    """Append an empty team numbered max(existing) + 1 (1 when there are no teams)."""
    _require_times(start_time, end_time)
    next_number = max((team.team_number for team in configuration.teams), default=0) + 1

    team = StartListTeam(
        team_number=next_number,
        start_time=start_time.strip(),
        end_time=end_time.strip(),
        weapon_classes=[],
        shooter_count=0,
        shooters=[],
    )
    configuration.teams.append(team)
    return team


def delete_team(configuration: StartListConfiguration, team_number: int) -> None:
    """
    Delete an empty team and renumber the remaining teams 1..N.

    Raises:
        StartListNotFoundError: team not found
        StartListConflictError: team still has shooters
    """
    _require_positive(team_number, "team number")
    team = get_team_or_error(configuration, team_number)
    if team.shooters:
        raise StartListConflictError(
            f"Team {team_number} has {len(team.shooters)} shooters and must be emptied first"
        )

    configuration.teams = [t for t in configuration.teams if t is not team]
    renumber_teams(configuration)


def update_team_times(
    configuration: StartListConfiguration,
    team_number: int,
    start_time: str,
    end_time: str,
) -> StartListTeam:
    """Overwrite one team's times. Other teams are not shifted."""
    _require_positive(team_number, "team number")
    _require_times(start_time, end_time)
    team = get_team_or_error(configuration, team_number)

    team.start_time = start_time.strip()
    team.end_time = end_time.strip()
    return team


# ============================================================================
# Whole-configuration replacement
# ============================================================================


def replace_configuration(
    configuration: StartListConfiguration,
    replacement: StartListConfiguration,
) -> StartListConfiguration:
    """
    Replace settings and teams with a client-edited configuration.

    Derived team fields are re-established before validation.

    Raises:
        InvalidStartListParameterError: the normalized replacement fails validation;
            ``errors`` lists every problem found
    """
    candidate = normalize_configuration(replacement.model_copy(deep=True))
    result = validate_configuration(candidate)
    if not result.is_valid:
        raise InvalidStartListParameterError("Start list configuration is invalid", errors=result.errors)

    configuration.settings = candidate.settings
    configuration.teams = candidate.teams
    return configuration
