"""Core data models for votes and slot statistics."""

from dataclasses import dataclass, field
from typing import Any, Self


@dataclass
class Vote:
    """One participant's stored vote.

    Attributes:
        name: Participant name as first entered (unique, case-insensitive)
        email: Optional contact address ("" when not given)
        primary_slots: Slot ids picked as first choice
        secondary_slots: Slot ids picked as acceptable fallback
        ip: Origin address of the last submission
        user_agent: Client identifier of the last submission
        created_at: When the name first voted (ISO timestamp)
        updated_at: When the vote was last overwritten (ISO timestamp)
        id: Row id in the store, None before the vote is saved

    Example:
        >>> vote = Vote(
        ...     name="Anna",
        ...     primary_slots=["Mo 10.02. 16:30"],
        ...     secondary_slots=["Di 11.02. 17:00"],
        ... )
    """
    name: str
    email: str = ""
    primary_slots: list[str] = field(default_factory=list)
    secondary_slots: list[str] = field(default_factory=list)
    ip: str = ""
    user_agent: str = ""
    created_at: str = ""
    updated_at: str = ""
    id: int | None = None

    @property
    def all_slots(self) -> list[str]:
        """Primary then secondary slots, without duplicates."""
        return combined_slots(self.primary_slots, self.secondary_slots)

    def state_for(self, slot: str) -> str:
        """Return "primary", "secondary" or "" for a slot in the voting grid."""
        if slot in self.primary_slots:
            return "primary"
        if slot in self.secondary_slots:
            return "secondary"
        return ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "primary_slots": list(self.primary_slots),
            "secondary_slots": list(self.secondary_slots),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class SlotStat:
    """Aggregated votes for a single slot. Derived on every read, never stored."""
    primary: int = 0
    secondary: int = 0
    total: int = 0
    score: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "total": self.total,
            "score": self.score,
        }


@dataclass
class RankedSlot:
    """A slot's position in the score ranking.

    Attributes:
        slot: Slot identifier
        rank: 1-indexed dense rank (equal scores share a rank)
        stat: The slot's aggregated statistics
    """
    slot: str
    rank: int
    stat: SlotStat

    def to_dict(self) -> dict[str, Any]:
        return {"slot": self.slot, "rank": self.rank, **self.stat.to_dict()}

    @classmethod
    def build_ranking(cls, ordered: list[tuple[str, SlotStat]]) -> list[Self]:
        """Build dense-ranked entries from slots sorted by descending score.

        The rank only moves on when the score differs from the previous entry,
        so two slots tied at the top are both rank 1 and the next one is rank 2.

        Args:
            ordered: (slot, stat) pairs, highest score first

        Returns:
            List of RankedSlot objects in the same order.
        """
        ranking = []
        rank = 0
        last_score = None
        for slot, stat in ordered:
            if stat.score != last_score:
                rank += 1
                last_score = stat.score
            ranking.append(cls(slot=slot, rank=rank, stat=stat))

        return ranking


@dataclass
class Submission:
    """Raw form input from a participant, before validation."""
    name: str
    email: str = ""
    primary: list[str] = field(default_factory=list)
    secondary: list[str] = field(default_factory=list)


def combined_slots(primary: list[str], secondary: list[str]) -> list[str]:
    """Ordered union of primary then secondary slots, each slot once."""
    return list(dict.fromkeys(list(primary) + list(secondary)))
