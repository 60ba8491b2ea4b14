"""
Official start list selection.

At most one start list per competition is official. Publishing a list first
clears the flag on every other list of the competition, then sets it on the
target. The cascade is best-effort: a failure to clear one of the other lists
is logged and does not stop the target from being published.
"""

import logging
from typing import Optional

from sqlmodel import Session, select

from startlist.models.start_list import StartList
from startlist.services.start_list_store import (
    get_competition_or_error,
    get_start_list_or_error,
    list_start_lists,
)

logger = logging.getLogger(__name__)


def _clear_official(session: Session, start_list: StartList) -> None:
    start_list.is_official = False
    session.add(start_list)
    session.commit()


def unset_other_official_lists(session: Session, competition_id: int, keep_start_list_id: int) -> int:
    """
    Clear is_official on every other official list of the competition.

    Returns:
        Number of lists cleared
    """
    others = session.exec(
        select(StartList).where(
            StartList.competition_id == competition_id,
            StartList.id != keep_start_list_id,
            StartList.is_official == True,  # noqa: E712
        )
    ).all()

    cleared = 0
    for other in others:
        try:
            _clear_official(session, other)
            cleared += 1
        except Exception:
            session.rollback()
            logger.exception(
                "Failed to unset official flag on start list %s (competition %s)", other.id, competition_id
            )
    return cleared


def set_official(session: Session, competition_id: int, start_list_id: int, is_official: bool) -> StartList:
    """
    Publish (is_official=True) or unpublish a start list.

    Raises:
        InvalidStartListParameterError: non-positive ids
        StartListNotFoundError: competition or list not found, or list belongs elsewhere
    """
    get_competition_or_error(session, competition_id)
    start_list = get_start_list_or_error(session, start_list_id, competition_id)

    if is_official:
        cleared = unset_other_official_lists(session, competition_id, start_list_id)
        if cleared:
            logger.info("Unpublished %d other start lists for competition %s", cleared, competition_id)

    start_list.is_official = is_official
    session.add(start_list)
    session.commit()
    session.refresh(start_list)

    logger.info(
        "%s start list %s for competition %s",
        "Published" if is_official else "Unpublished",
        start_list_id,
        competition_id,
    )
    return start_list


def get_official_start_list(session: Session, competition_id: int) -> Optional[StartList]:
    """The official list (newest one if a failed cascade left more than one)."""
    for start_list in list_start_lists(session, competition_id):
        if start_list.is_official:
            return start_list
    return None


def get_current_start_list(session: Session, competition_id: int) -> Optional[StartList]:
    """
    The list to show for a competition: the official one, otherwise the most
    recently generated list that has a configuration.
    """
    get_competition_or_error(session, competition_id)
    official = get_official_start_list(session, competition_id)
    if official:
        return official

    for start_list in list_start_lists(session, competition_id):
        if start_list.configuration_data:
            return start_list
    return None
