"""Vote submission: validate participant input and persist it."""

import logging

from poll.models import Submission, Vote
from poll.store import StoreError, VoteStore

logger = logging.getLogger(__name__)

MSG_NAME_MISSING = "Bitte gib deinen Namen ein."
MSG_NO_SLOTS = "Bitte wähle mindestens einen Zeitslot."
MSG_SAVE_FAILED = "Fehler beim Speichern."
MSG_SAVED = "Deine Stimme wurde gespeichert."


class SubmissionError(Exception):
    """A submission was rejected. The message is shown to the participant."""
    pass


def validate_submission(submission: Submission) -> Submission:
    """Check a submission and return a cleaned copy.

    The name and email are trimmed. A slot may appear as both primary and
    secondary; that is accepted and counted twice by the tally.

    Raises:
        SubmissionError: If the name is empty or no slot was picked
    """
    name = (submission.name or "").strip()
    if not name:
        raise SubmissionError(MSG_NAME_MISSING)

    primary = list(submission.primary or [])
    secondary = list(submission.secondary or [])
    if not primary and not secondary:
        raise SubmissionError(MSG_NO_SLOTS)

    return Submission(
        name=name,
        email=(submission.email or "").strip(),
        primary=primary,
        secondary=secondary,
    )


def submit_vote(
    store: VoteStore, submission: Submission, ip: str, user_agent: str
) -> Vote:
    """Validate a submission and save it, replacing any earlier vote by the same name.

    Args:
        store: Vote store to write to
        submission: Raw participant input
        ip: Origin address of the request
        user_agent: Client identifier of the request

    Returns:
        The stored Vote

    Raises:
        SubmissionError: If validation fails or the store rejects the write
    """
    cleaned = validate_submission(submission)

    try:
        vote = store.save_vote(
            cleaned.name,
            cleaned.email,
            cleaned.primary,
            cleaned.secondary,
            ip,
            user_agent,
        )
    except StoreError as e:
        logger.error("Could not save vote: %s", e)
        raise SubmissionError(MSG_SAVE_FAILED) from e

    logger.info(
        "Saved vote for %r (%d primary, %d secondary)",
        vote.name, len(vote.primary_slots), len(vote.secondary_slots),
    )
    return vote
