"""Tests for the fake voter generator."""

from poll.submit import validate_submission
from scripts.seed_votes import generate_submissions
from tests.conftest import DI_1630, DI_1700, MO_1630, MO_1700

SLOTS = [MO_1630, MO_1700, DI_1630, DI_1700]


class TestGenerateSubmissions:
    def test_count_and_unique_names(self):
        submissions = generate_submissions(SLOTS, 10, seed=1)
        assert len(submissions) == 10
        names = [s.name.lower() for s in submissions]
        assert len(set(names)) == 10

    def test_all_valid_and_on_the_grid(self):
        for submission in generate_submissions(SLOTS, 10, seed=2):
            validate_submission(submission)
            assert set(submission.primary) <= set(SLOTS)
            assert set(submission.secondary) <= set(SLOTS)
            assert not set(submission.primary) & set(submission.secondary)

    def test_deterministic(self):
        first = generate_submissions(SLOTS, 5, seed=3)
        second = generate_submissions(SLOTS, 5, seed=3)
        assert first == second
