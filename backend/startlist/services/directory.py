"""
Registration, result and member directory lookups.

These are the only reads the start list engine makes outside its own
StartList rows: the partitioner input, the recorded-results check used by
shooter removal, and club/name resolution.
"""

from typing import List, Optional

from sqlmodel import Session, select

from startlist.models.club import Club
from startlist.models.member import Member
from startlist.models.registration import Registration
from startlist.models.result_entry import ResultEntry
from startlist.services.start_list_schema import RegistrationEntry, is_unknown_club


def resolve_club_name(session: Session, club_id: Optional[int]) -> Optional[str]:
    if not club_id:
        return None
    club = session.get(Club, club_id)
    return club.name if club else None


def resolve_member_club(session: Session, member_id: int) -> Optional[str]:
    """Club name through the member's primary club, or None."""
    member = session.get(Member, member_id)
    if not member:
        return None
    return resolve_club_name(session, member.primary_club_id)


def resolve_member_name(session: Session, member_id: int) -> Optional[str]:
    member = session.get(Member, member_id)
    if not member or not member.display_name:
        return None
    return member.display_name


def get_active_registrations(session: Session, competition_id: int) -> List[Registration]:
    return session.exec(
        select(Registration)
        .where(Registration.competition_id == competition_id, Registration.is_active == True)  # noqa: E712
        .order_by(Registration.id)
    ).all()


def get_registrations(session: Session, competition_id: int) -> List[RegistrationEntry]:
    """
    Active, class-expanded registrations for a competition.

    Unknown/blank club names are backfilled from the member directory; the
    stored registration rows are not modified.
    """
    entries = []
    for reg in get_active_registrations(session, competition_id):
        club = reg.club_name
        if is_unknown_club(club):
            club = resolve_member_club(session, reg.member_id) or club
        entries.append(
            RegistrationEntry(
                member_id=reg.member_id,
                weapon_class=reg.weapon_class,
                member_name=reg.member_name,
                club_name=club,
                registered_at=reg.registered_at,
            )
        )
    return entries


def has_recorded_results(session: Session, competition_id: int, member_id: int) -> bool:
    existing = session.exec(
        select(ResultEntry.id).where(
            ResultEntry.competition_id == competition_id,
            ResultEntry.member_id == member_id,
        )
    ).first()
    return existing is not None
