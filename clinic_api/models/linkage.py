"""Link between an artifact and the encounter it belongs to.

Notes and feedback either point at a (service, participant) pair or at
nothing. ``Linked`` and ``Unlinked`` make that choice explicit so callers
branch on ``kind`` instead of testing two nullable columns.
"""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Linked:
    service_id: str
    participant_id: str

    kind: ClassVar[str] = "linked"


@dataclass(frozen=True)
class Unlinked:
    kind: ClassVar[str] = "unlinked"


Link = Linked | Unlinked

UNLINKED = Unlinked()


def link_from_columns(service_id: str | None, participant_id: str | None) -> Link:
    """Build a link from the two nullable foreign key columns.

    A record is linked only through a participant. A service id without one
    (a booking note, say) still reads as ``Unlinked``.

    Raises:
        ValueError: If a participant is set without its service
    """
    if participant_id is None:
        return UNLINKED
    if service_id is None:
        raise ValueError(f"Participant {participant_id} linked without a service")
    return Linked(service_id=service_id, participant_id=participant_id)


def link_columns(link: Link) -> tuple[str | None, str | None]:
    """Inverse of ``link_from_columns``."""
    if isinstance(link, Linked):
        return link.service_id, link.participant_id
    return None, None
