"""
Priority-based candidate selection.

Installers are ranked by ascending priority rank, then name, then id, so the
same inputs always produce the same order and a retried cascade picks the
same person.
"""

import logging
from collections.abc import Collection, Iterable

from assignment_engine.errors import InsufficientCandidatesError
from assignment_engine.schemas.installer_schema import Installer

logger = logging.getLogger(__name__)


def priority_key(installer: Installer) -> tuple[int, str, str]:
    return (installer.priority_rank, installer.name.lower(), installer.id)


def rank_installers(installers: Iterable[Installer]) -> list[Installer]:
    """Return installers in deterministic priority order."""
    return sorted(installers, key=priority_key)


def select_candidates(
    available: Iterable[Installer],
    seats_needed: int,
    exclude: Collection[str] = (),
) -> list[Installer]:
    """Pick the next ``seats_needed`` candidates, one per open seat.

    Raises:
        InsufficientCandidatesError: If fewer candidates than seats remain.
            The error carries the candidates that were found.
    """
    if seats_needed <= 0:
        return []
    ranked = [i for i in rank_installers(available) if i.id not in exclude]
    selected = ranked[:seats_needed]
    if len(selected) < seats_needed:
        logger.info(
            "Only %d of %d seat(s) can be offered", len(selected), seats_needed
        )
        raise InsufficientCandidatesError(seats_needed, selected)
    return selected
