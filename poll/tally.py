"""Vote aggregation and slot ranking."""

from dataclasses import dataclass
from typing import Any

from poll.config import PollConfig
from poll.models import RankedSlot, SlotStat, Vote

PRIMARY_WEIGHT = 2
SECONDARY_WEIGHT = 1


def aggregate_votes(slots: list[str], votes: list[Vote]) -> dict[str, SlotStat]:
    """Count primary and secondary votes per slot.

    Every slot starts at zero, including slots nobody picked. A primary pick
    adds PRIMARY_WEIGHT to the score and a secondary pick SECONDARY_WEIGHT.

    A slot listed as both primary and secondary in the same vote is counted
    in both. Slot ids outside the grid are ignored.

    Args:
        slots: All slot ids in grid order
        votes: Every stored vote

    Returns:
        Dict mapping slot id -> SlotStat, in grid order
    """
    stats: dict[str, SlotStat] = {slot: SlotStat() for slot in slots}

    for vote in votes:
        for slot in vote.primary_slots:
            if slot in stats:
                stat = stats[slot]
                stat.primary += 1
                stat.total += 1
                stat.score += PRIMARY_WEIGHT
        for slot in vote.secondary_slots:
            if slot in stats:
                stat = stats[slot]
                stat.secondary += 1
                stat.total += 1
                stat.score += SECONDARY_WEIGHT

    return stats


def rank_slots(stats: dict[str, SlotStat]) -> list[RankedSlot]:
    """Rank slots by descending score with dense ranks.

    Slots with a score of zero are left out. Equal scores keep their grid
    order because the sort is stable.
    """
    ordered = sorted(stats.items(), key=lambda item: item[1].score, reverse=True)
    return [
        entry for entry in RankedSlot.build_ranking(ordered)
        if entry.stat.score > 0
    ]


def bar_heights(stat: SlotStat, max_total: int) -> tuple[float, float]:
    """Heights (percent) of the primary and secondary parts of a result bar.

    Both parts are scaled against the busiest slot. The stack never exceeds
    100 percent and is split in the ratio primary : secondary.
    """
    if max_total <= 0:
        return 0.0, 0.0
    primary_pct = stat.primary / max_total * 100
    secondary_pct = stat.secondary / max_total * 100
    total_height = min(100.0, primary_pct + secondary_pct)
    if total_height <= 0:
        return 0.0, 0.0
    primary_height = primary_pct / (primary_pct + secondary_pct) * total_height
    return primary_height, total_height - primary_height


@dataclass
class PollSummary:
    """Everything the result and admin views show, computed from all votes."""
    slots: list[str]
    stats: dict[str, SlotStat]
    ranking: list[RankedSlot]
    votes: list[Vote]

    @property
    def total_voters(self) -> int:
        return len(self.votes)

    @property
    def max_total(self) -> int:
        """Highest number of picks on one slot, at least 1."""
        return max((s.total for s in self.stats.values()), default=0) or 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "total_voters": self.total_voters,
            "slots": list(self.slots),
            "stats": {slot: stat.to_dict() for slot, stat in self.stats.items()},
            "ranking": [entry.to_dict() for entry in self.ranking],
            "voters": [vote.to_dict() for vote in self.votes],
        }


def summarize_poll(config: PollConfig, votes: list[Vote]) -> PollSummary:
    """Aggregate and rank all votes over the configured slot grid."""
    stats = aggregate_votes(config.slots, votes)
    return PollSummary(
        slots=list(config.slots),
        stats=stats,
        ranking=rank_slots(stats),
        votes=votes,
    )
