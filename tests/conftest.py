"""Shared test helpers."""

import pytest

from poll.config import Day, PollConfig
from poll.models import Vote
from poll.store import VoteStore

# 2 days x 2 times
MO_1630 = "Mo 10.02. 16:30"
MO_1700 = "Mo 10.02. 17:00"
DI_1630 = "Di 11.02. 16:30"
DI_1700 = "Di 11.02. 17:00"


def make_vote(name: str, primary: list[str] = (), secondary: list[str] = (), **kwargs) -> Vote:
    """Build a Vote with only the fields the tally looks at."""
    return Vote(
        name=name,
        primary_slots=list(primary),
        secondary_slots=list(secondary),
        **kwargs,
    )


@pytest.fixture
def small_config(tmp_path):
    """A 2x2 grid storing votes under tmp_path."""
    return PollConfig(
        title="Testumfrage",
        days=(Day(label="Mo 10.02.", short="Mo"), Day(label="Di 11.02.", short="Di")),
        times=("16:30", "17:00"),
        db_path=str(tmp_path / "poll.sqlite"),
    )


@pytest.fixture
def store(tmp_path):
    return VoteStore(tmp_path / "votes.sqlite")
