"""Fill a poll database with fake voters.

Generates participant names and emails with faker using a fixed seed and
picks random primary and secondary slots from the configured grid, so the
result and admin views can be tried out without real votes.

Usage:
    python scripts/seed_votes.py
    python scripts/seed_votes.py --db demo.sqlite --count 25 --seed 7
"""

import argparse
import random
import sys
from pathlib import Path

from faker import Faker

sys.path.insert(0, str(Path(__file__).parent.parent))

from poll.config import load_config
from poll.models import Submission
from poll.store import VoteStore
from poll.submit import submit_vote

SEED = 20260210


def generate_submissions(slots: list[str], count: int, seed: int) -> list[Submission]:
    """Generate fake submissions over the given slots.

    Each voter picks one to four primary slots and up to four secondary slots
    from the remaining ones, so every submission is valid.
    """
    fake = Faker(["de_DE", "en_US"])
    Faker.seed(seed)
    rng = random.Random(seed)

    submissions = []
    used_names: set[str] = set()
    while len(submissions) < count:
        name = fake.name()
        if name.lower() in used_names:
            continue
        used_names.add(name.lower())

        primary = rng.sample(slots, k=rng.randint(1, min(4, len(slots))))
        remaining = [s for s in slots if s not in primary]
        secondary = rng.sample(remaining, k=rng.randint(0, min(4, len(remaining))))
        email = fake.email() if rng.random() < 0.6 else ""

        submissions.append(Submission(
            name=name,
            email=email,
            primary=primary,
            secondary=secondary,
        ))

    return submissions


def main():
    parser = argparse.ArgumentParser(description="Fill a poll database with fake voters")
    parser.add_argument("--config", type=Path, help="Poll config YAML (default: poll.yaml)")
    parser.add_argument("--db", type=Path, help="SQLite file (default: from config)")
    parser.add_argument("--count", type=int, default=12, help="Number of voters")
    parser.add_argument("--seed", type=int, default=SEED, help="Random seed")
    args = parser.parse_args()

    config = load_config(args.config)
    store = VoteStore(args.db or config.db_path)

    submissions = generate_submissions(config.slots, args.count, args.seed)
    for submission in submissions:
        submit_vote(store, submission, ip="127.0.0.1", user_agent="seed_votes")

    print(f"Saved {len(submissions)} votes to {store.db_path} "
          f"({store.count_votes()} voters in total)")


if __name__ == "__main__":
    main()
