"""
Start List Configuration - data model and versioned (de)serialization.

A configuration is the aggregate persisted for one start list:

    {"schema_version": 1, "settings": {...}, "teams": [{..., "shooters": [...]}]}

Documents written before versioning used PascalCase keys and an "H:MM"
interval string; ``load_configuration`` upgrades those on read.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

DEFAULT_MAX_SHOOTERS_PER_TEAM = 30
DEFAULT_START_INTERVAL_MINUTES = 120
DEFAULT_FIRST_START_TIME = "09:00"
DEFAULT_CLASS_START_ORDER = "A,B,C,R,M,L"

UNKNOWN_SHOOTER_NAME = "Unknown shooter"
UNKNOWN_CLUB_NAME = "Unknown club"


class TeamFormat(str, Enum):
    mixed = "Mixed"
    separated_by_class = "SeparatedByClass"
    ab_combined = "ABCombined"
    bc_combined = "BCCombined"


class MemberSortOrder(str, Enum):
    first_name = "FirstName"
    last_name = "LastName"
    club_name = "ClubName"
    weapon_class = "Class"
    name = "Name"


# Team format labels found in unversioned documents
LEGACY_TEAM_FORMATS: Dict[str, TeamFormat] = {
    "Mixade Skjutlag": TeamFormat.mixed,
    "En vapengrupp per Skjutlag": TeamFormat.separated_by_class,
    "A och B i samma skjutlag": TeamFormat.ab_combined,
    "B och C i samma skjutlag": TeamFormat.bc_combined,
}


# ============================================================================
# Clock helpers ("HH:MM" wall-clock strings)
# ============================================================================


def parse_clock(value: str) -> int:
    """
    Parse "HH:MM" into minutes since midnight.

    Raises:
        ValueError: value is not a valid time of day
    """
    if value is None:
        raise ValueError("Time of day is required")
    parts = value.strip().split(":")
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise ValueError(f"Invalid time of day '{value}', expected HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time of day '{value}', expected HH:MM")
    return hours * 60 + minutes


def format_clock(total_minutes: int) -> str:
    """Format minutes since midnight as "HH:MM" (wraps past midnight)."""
    return f"{(total_minutes // 60) % 24:02d}:{total_minutes % 60:02d}"


def is_valid_clock(value: Optional[str]) -> bool:
    try:
        parse_clock(value)
    except ValueError:
        return False
    return True


def is_unknown_club(club: Optional[str]) -> bool:
    return not club or not club.strip() or club.strip().casefold() == UNKNOWN_CLUB_NAME.casefold()


# ============================================================================
# Registration input
# ============================================================================


@dataclass(frozen=True)
class RegistrationEntry:
    """One class-expanded registration, as handed to the partitioner."""

    member_id: int
    weapon_class: str
    member_name: Optional[str] = None
    club_name: Optional[str] = None
    registered_at: Optional[datetime] = None


# ============================================================================
# Configuration model
# ============================================================================


class StartListShooter(BaseModel):
    position: int
    name: str = ""
    club: str = ""
    weapon_class: str = ""
    member_id: int


class StartListTeam(BaseModel):
    team_number: int
    start_time: str = ""
    end_time: str = ""
    weapon_classes: List[str] = Field(default_factory=list)
    shooter_count: int = 0
    shooters: List[StartListShooter] = Field(default_factory=list)


class StartListSettings(BaseModel):
    format: TeamFormat = TeamFormat.mixed
    max_shooters_per_team: int = DEFAULT_MAX_SHOOTERS_PER_TEAM
    start_interval: int = DEFAULT_START_INTERVAL_MINUTES  # minutes
    first_start_time: str = DEFAULT_FIRST_START_TIME
    member_sort_order: MemberSortOrder = MemberSortOrder.first_name
    class_start_order: str = DEFAULT_CLASS_START_ORDER
    generated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StartListConfiguration(BaseModel):
    schema_version: int = SCHEMA_VERSION
    settings: StartListSettings = Field(default_factory=StartListSettings)
    teams: List[StartListTeam] = Field(default_factory=list)

    def find_team(self, team_number: int) -> Optional[StartListTeam]:
        for team in self.teams:
            if team.team_number == team_number:
                return team
        return None

    def find_shooter(self, member_id: int) -> Tuple[Optional[StartListTeam], Optional[StartListShooter]]:
        """Return (team, shooter) holding member_id, or (None, None)."""
        for team in self.teams:
            for shooter in team.shooters:
                if shooter.member_id == member_id:
                    return team, shooter
        return None, None

    def member_ids(self) -> Set[int]:
        return {shooter.member_id for team in self.teams for shooter in team.shooters}

    @property
    def total_shooters(self) -> int:
        return sum(len(team.shooters) for team in self.teams)


# ============================================================================
# Serialization
# ============================================================================


def dump_configuration(configuration: StartListConfiguration) -> str:
    return configuration.model_copy(update={"schema_version": SCHEMA_VERSION}).model_dump_json()


def load_configuration(raw: str) -> StartListConfiguration:
    """
    Parse a stored configuration document.

    Raises:
        ValueError: not JSON, not an object, or a schema version newer than supported
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Start list configuration must be a JSON object")

    version = data.get("schema_version")
    if version is None:
        logger.warning("Upgrading unversioned start list configuration to schema version %d", SCHEMA_VERSION)
        data = _upgrade_unversioned(data)
    elif version > SCHEMA_VERSION:
        raise ValueError(f"Unsupported start list schema version {version} (max {SCHEMA_VERSION})")

    return StartListConfiguration.model_validate(data)


def _parse_interval(value: Any) -> int:
    """Old documents store the interval as "H:MM"; newer ones as minutes."""
    if value is None or value == "":
        return DEFAULT_START_INTERVAL_MINUTES
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if ":" in text:
        hours, _, minutes = text.partition(":")
        return int(hours or 0) * 60 + int(minutes or 0)
    return int(text)


def _upgrade_unversioned(data: Dict[str, Any]) -> Dict[str, Any]:
    settings = data.get("Settings") or {}
    raw_format = settings.get("Format") or ""
    try:
        team_format = LEGACY_TEAM_FORMATS.get(raw_format) or TeamFormat(raw_format)
    except ValueError:
        logger.warning(f"Unknown legacy team format '{raw_format}', treating as mixed")
        team_format = TeamFormat.mixed

    upgraded_settings: Dict[str, Any] = {
        "format": team_format,
        "max_shooters_per_team": settings.get("MaxShootersPerTeam") or DEFAULT_MAX_SHOOTERS_PER_TEAM,
        "start_interval": _parse_interval(settings.get("StartInterval")),
        "first_start_time": settings.get("FirstStartTime") or DEFAULT_FIRST_START_TIME,
    }
    if settings.get("Generated"):
        upgraded_settings["generated"] = settings["Generated"]

    teams = []
    for team in data.get("Teams") or []:
        shooters = [
            {
                "position": shooter.get("Position", 0),
                "name": shooter.get("Name") or "",
                "club": shooter.get("Club") or "",
                "weapon_class": shooter.get("WeaponClass") or "",
                "member_id": shooter.get("MemberId", 0),
            }
            for shooter in team.get("Shooters") or []
        ]
        teams.append(
            {
                "team_number": team.get("TeamNumber", 0),
                "start_time": team.get("StartTime") or "",
                "end_time": team.get("EndTime") or "",
                "weapon_classes": list(team.get("WeaponClasses") or []),
                "shooter_count": team.get("ShooterCount", len(shooters)),
                "shooters": shooters,
            }
        )

    return {"schema_version": SCHEMA_VERSION, "settings": upgraded_settings, "teams": teams}


# ============================================================================
# Summaries
# ============================================================================


class StartListTeamSummary(BaseModel):
    team_number: int
    start_time: str
    end_time: str
    shooter_count: int
    weapon_classes: List[str] = Field(default_factory=list)


class StartListSummary(BaseModel):
    team_count: int = 0
    total_shooters: int = 0
    team_format: str = ""
    first_start_time: str = ""
    last_end_time: str = ""
    teams: List[StartListTeamSummary] = Field(default_factory=list)


def summarize_configuration(configuration: StartListConfiguration) -> StartListSummary:
    teams = configuration.teams
    return StartListSummary(
        team_count=len(teams),
        total_shooters=configuration.total_shooters,
        team_format=configuration.settings.format.value,
        first_start_time=teams[0].start_time if teams else configuration.settings.first_start_time,
        last_end_time=teams[-1].end_time if teams else "",
        teams=[
            StartListTeamSummary(
                team_number=team.team_number,
                start_time=team.start_time,
                end_time=team.end_time,
                shooter_count=team.shooter_count,
                weapon_classes=list(team.weapon_classes),
            )
            for team in teams
        ],
    )
