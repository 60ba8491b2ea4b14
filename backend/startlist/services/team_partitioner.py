"""
Team Partitioner - deterministic start list generation.

Splits the class-expanded registrations of a competition into numbered teams
(relays) with back-to-back time windows. Pure: no session, no side effects.

Team formats:
1. Mixed: everyone pooled, sorted by member sort order, sliced into teams
2. SeparatedByClass: one class bucket at a time, a team never spans two buckets
3. ABCombined: A+B classes first, then C, then any remaining classes
4. BCCombined: B+C classes first, then A, then any remaining classes

Shared rules:
- Team N+1 starts when team N ends (end = start + start_interval)
- Team numbers are 1-based in emission order; empty teams are never emitted
- A shooter never appears twice in the same team: a second class entry of the
  same shooter is deferred to the next team of the same bucket
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from startlist.services.start_list_schema import (
    UNKNOWN_SHOOTER_NAME,
    MemberSortOrder,
    RegistrationEntry,
    StartListConfiguration,
    StartListSettings,
    StartListShooter,
    StartListTeam,
    TeamFormat,
    format_clock,
    parse_clock,
)

logger = logging.getLogger(__name__)

# Weapon class levels used when no class start order is given; anything else sorts last
CLASS_LEVEL_ORDER = ["A", "B", "C", "R", "M", "L"]


# ============================================================================
# Sort keys
# ============================================================================


def _name_parts(name: Optional[str]) -> List[str]:
    return (name or "").split()


def member_sort_key(order: MemberSortOrder) -> Callable[[RegistrationEntry], str]:
    """Key function for ordering shooters within a team. Missing values sort as ""."""
    if order == MemberSortOrder.first_name:
        return lambda reg: (_name_parts(reg.member_name)[:1] or [""])[0].casefold()
    if order == MemberSortOrder.last_name:
        return lambda reg: (_name_parts(reg.member_name)[-1:] or [""])[0].casefold()
    if order == MemberSortOrder.club_name:
        return lambda reg: (reg.club_name or "").casefold()
    if order == MemberSortOrder.weapon_class:
        return lambda reg: (reg.weapon_class or "").casefold()
    return lambda reg: (reg.member_name or "").casefold()


def _class_then_name(reg: RegistrationEntry):
    return ((reg.weapon_class or "").upper(), (reg.member_name or "").casefold())


def class_level(weapon_class: str) -> int:
    """Index of the class level (A < B < C < R < M < L < anything else)."""
    prefix = (weapon_class or "")[:1].upper()
    if prefix in CLASS_LEVEL_ORDER:
        return CLASS_LEVEL_ORDER.index(prefix)
    return len(CLASS_LEVEL_ORDER)


def parse_class_start_order(class_start_order: Optional[str]) -> List[str]:
    """ "a, B ,,c" -> ["A", "B", "C"] (duplicates dropped, order kept)."""
    prefixes: List[str] = []
    for part in (class_start_order or "").split(","):
        prefix = part.strip().upper()
        if prefix and prefix not in prefixes:
            prefixes.append(prefix)
    return prefixes


# ============================================================================
# Bucketing
# ============================================================================


def bucket_by_class_order(registrations: Sequence[RegistrationEntry], prefixes: List[str]) -> List[List[RegistrationEntry]]:
    """
    One bucket per prefix (in the given order), then one bucket per remaining
    weapon class in ascending class order. Each bucket is sorted by class, then name.
    A registration lands in the first prefix it matches.
    """
    buckets: List[List[RegistrationEntry]] = []
    claimed = [False] * len(registrations)

    for prefix in prefixes:
        bucket = []
        for index, reg in enumerate(registrations):
            if not claimed[index] and (reg.weapon_class or "").upper().startswith(prefix):
                claimed[index] = True
                bucket.append(reg)
        buckets.append(sorted(bucket, key=_class_then_name))

    leftovers: Dict[str, List[RegistrationEntry]] = {}
    for index, reg in enumerate(registrations):
        if not claimed[index]:
            leftovers.setdefault((reg.weapon_class or "").upper(), []).append(reg)
    for weapon_class in sorted(leftovers):
        buckets.append(sorted(leftovers[weapon_class], key=_class_then_name))

    return [bucket for bucket in buckets if bucket]


def bucket_by_class_level(registrations: Sequence[RegistrationEntry]) -> List[List[RegistrationEntry]]:
    """Fallback bucketing when no class start order is configured."""
    levels: Dict[int, List[RegistrationEntry]] = {}
    for reg in registrations:
        levels.setdefault(class_level(reg.weapon_class), []).append(reg)
    return [sorted(levels[level], key=_class_then_name) for level in sorted(levels)]


def apply_class_start_order(registrations: Sequence[RegistrationEntry], class_start_order: Optional[str]) -> List[RegistrationEntry]:
    """Flatten the class buckets into one globally ordered sequence."""
    prefixes = parse_class_start_order(class_start_order)
    if prefixes:
        buckets = bucket_by_class_order(registrations, prefixes)
    else:
        buckets = bucket_by_class_level(registrations)
    return [reg for bucket in buckets for reg in bucket]


# ============================================================================
# Team assembly
# ============================================================================


def _take_distinct(pool: List[RegistrationEntry], limit: int) -> List[RegistrationEntry]:
    """Remove and return up to `limit` entries from the front of pool, one per shooter."""
    taken: List[RegistrationEntry] = []
    rest: List[RegistrationEntry] = []
    seen = set()
    for reg in pool:
        if len(taken) < limit and reg.member_id not in seen:
            taken.append(reg)
            seen.add(reg.member_id)
        else:
            rest.append(reg)
    pool[:] = rest
    return taken


def chunk_registrations(
    registrations: Sequence[RegistrationEntry],
    max_per_team: int,
    sort_key: Callable[[RegistrationEntry], str],
) -> List[List[RegistrationEntry]]:
    """Consecutive chunks of at most max_per_team distinct shooters, each sorted by sort_key."""
    pool = list(registrations)
    chunks = []
    while pool:
        chunk = _take_distinct(pool, max_per_team)
        chunks.append(sorted(chunk, key=sort_key))
    return chunks


class TeamClock:
    """Hands out team numbers and consecutive time windows."""

    def __init__(self, first_start_time: str, interval_minutes: int):
        self.next_start = parse_clock(first_start_time)
        self.interval = interval_minutes
        self.next_number = 1
        self.teams: List[StartListTeam] = []

    def emit(self, registrations: List[RegistrationEntry]) -> Optional[StartListTeam]:
        if not registrations:
            return None

        start = self.next_start
        end = start + self.interval
        shooters = [
            StartListShooter(
                position=position,
                name=reg.member_name or UNKNOWN_SHOOTER_NAME,
                club=reg.club_name or "",
                weapon_class=reg.weapon_class,
                member_id=reg.member_id,
            )
            for position, reg in enumerate(registrations, start=1)
        ]
        team = StartListTeam(
            team_number=self.next_number,
            start_time=format_clock(start),
            end_time=format_clock(end),
            weapon_classes=sorted({s.weapon_class for s in shooters}),
            shooter_count=len(shooters),
            shooters=shooters,
        )
        self.teams.append(team)
        self.next_number += 1
        self.next_start = end
        return team

    def emit_all(self, chunks: List[List[RegistrationEntry]]) -> None:
        for chunk in chunks:
            self.emit(chunk)


# ============================================================================
# Team formats
# ============================================================================


def _generate_mixed(registrations, settings: StartListSettings, clock: TeamClock) -> None:
    sort_key = member_sort_key(settings.member_sort_order)

    # Full key makes the result independent of input order
    ordered = sorted(
        registrations,
        key=lambda reg: (
            sort_key(reg),
            (reg.member_name or "").casefold(),
            (reg.weapon_class or "").upper(),
            reg.member_id,
        ),
    )
    clock.emit_all(chunk_registrations(ordered, settings.max_shooters_per_team, sort_key))


def _generate_separated(registrations, settings: StartListSettings, clock: TeamClock) -> None:
    sort_key = member_sort_key(settings.member_sort_order)
    prefixes = parse_class_start_order(settings.class_start_order)
    if prefixes:
        buckets = bucket_by_class_order(registrations, prefixes)
    else:
        buckets = bucket_by_class_level(registrations)

    for bucket in buckets:
        clock.emit_all(chunk_registrations(bucket, settings.max_shooters_per_team, sort_key))


def _generate_combined(
    registrations,
    settings: StartListSettings,
    clock: TeamClock,
    first_group: Tuple[str, ...],
    second_group: Tuple[str, ...],
) -> None:
    """
    Combined formats: first_group class prefixes (e.g. ("A", "B")) share teams, then
    second_group, then every remaining class prefix on its own.
    """
    sort_key = member_sort_key(settings.member_sort_order)
    ordered = apply_class_start_order(registrations, settings.class_start_order)

    def prefix_of(reg: RegistrationEntry) -> str:
        return (reg.weapon_class or "")[:1].upper()

    groups: List[List[RegistrationEntry]] = [
        [reg for reg in ordered if prefix_of(reg) in first_group],
        [reg for reg in ordered if prefix_of(reg) in second_group],
    ]
    remaining: Dict[str, List[RegistrationEntry]] = {}
    for reg in ordered:
        prefix = prefix_of(reg)
        if prefix not in first_group and prefix not in second_group:
            remaining.setdefault(prefix, []).append(reg)
    groups.extend(remaining.values())

    for group in groups:
        clock.emit_all(chunk_registrations(group, settings.max_shooters_per_team, sort_key))


def generate(
    registrations: Sequence[RegistrationEntry],
    settings: StartListSettings,
    generated_at: Optional[datetime] = None,
) -> StartListConfiguration:
    """
    Partition registrations into teams according to settings.format.

    Args:
        registrations: Active, class-expanded registrations (may be empty)
        settings: Team format and scheduling parameters
        generated_at: Generation timestamp (defaults to now, UTC)

    Returns:
        StartListConfiguration with the settings and the generated teams

    Raises:
        ValueError: max_shooters_per_team < 1, negative interval, or bad first_start_time
    """
    if settings.max_shooters_per_team < 1:
        raise ValueError("max_shooters_per_team must be at least 1")
    if settings.start_interval < 0:
        raise ValueError("start_interval must be >= 0 minutes")

    clock = TeamClock(settings.first_start_time, settings.start_interval)
    registrations = list(registrations)

    if settings.format == TeamFormat.separated_by_class:
        _generate_separated(registrations, settings, clock)
    elif settings.format == TeamFormat.ab_combined:
        _generate_combined(registrations, settings, clock, ("A", "B"), ("C",))
    elif settings.format == TeamFormat.bc_combined:
        _generate_combined(registrations, settings, clock, ("B", "C"), ("A",))
    else:
        _generate_mixed(registrations, settings, clock)

    generated_settings = settings.model_copy(update={"generated": generated_at or datetime.now(timezone.utc)})
    configuration = StartListConfiguration(settings=generated_settings, teams=clock.teams)

    logger.info(
        "Generated %d teams for %d registrations (format=%s, max=%d)",
        len(clock.teams),
        len(registrations),
        settings.format.value,
        settings.max_shooters_per_team,
    )
    return configuration
