"""Poll configuration: the time slot grid, page texts and storage settings.

The configuration is built once at process start and handed to the tally,
store and renderer explicitly. It is frozen; nothing mutates it at runtime.

A YAML file can override any field:

    title: Team-Meeting
    days:
      - {label: "Mo 10.02.", short: Mo}
      - {label: "Di 11.02.", short: Di}
    times: ["16:30", "17:00"]
    admin_secret: geheim
"""

import os
from functools import cached_property
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from ruamel.yaml import YAML

DEFAULT_CONFIG_PATH = Path("poll.yaml")

yaml = YAML(typ="safe")


class ConfigError(ValueError):
    """Raised when a configuration file cannot be read or is invalid."""
    pass


class Day(BaseModel):
    """A column of the poll grid."""
    model_config = ConfigDict(frozen=True)

    # Full label, part of every slot id (e.g. "Mo 10.02.")
    label: str = Field(min_length=1)
    # Column header in the calendar (e.g. "Mo")
    short: str = Field(min_length=1)


def _default_days() -> tuple[Day, ...]:
    return (
        Day(label="Mo 10.02.", short="Mo"),
        Day(label="Di 11.02.", short="Di"),
        Day(label="Mi 12.02.", short="Mi"),
        Day(label="Do 13.02.", short="Do"),
        Day(label="Fr 14.02.", short="Fr"),
    )


class PollConfig(BaseModel):
    """Immutable poll configuration.

    The slot grid is the Cartesian product of ``days`` and ``times``: for each
    day (in order) every time (in order). A slot id is ``"<day label> <time>"``.
    """
    model_config = ConfigDict(frozen=True)

    title: str = "Meeting Terminabstimmung"
    description: str = (
        "Wähle deine bevorzugten Zeitslots. "
        "Klicke einmal für primär, zweimal für sekundär."
    )
    days: tuple[Day, ...] = Field(default_factory=_default_days, min_length=1)
    times: tuple[str, ...] = Field(
        default=("16:30", "17:00", "17:30", "18:00", "18:30"), min_length=1)
    # Empty string: the admin view is open to anyone who asks for it
    admin_secret: str = ""
    db_path: str = "poll_data.sqlite"
    cookie_name: str = "poll_voter_name"
    cookie_max_age: int = Field(86400 * 30, gt=0)

    @model_validator(mode="after")
    def validate_grid(self):
        """Slot ids must be unique, so days and times may not repeat."""
        labels = [d.label for d in self.days]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate day labels: {labels}")
        if len(set(self.times)) != len(self.times):
            raise ValueError(f"Duplicate times: {list(self.times)}")
        return self

    @cached_property
    def slots(self) -> list[str]:
        """All slot ids in grid order (day-major)."""
        return [slot_id(day, time) for day in self.days for time in self.times]


def slot_id(day: Day, time: str) -> str:
    """Build the identifier of the slot at (day, time)."""
    return f"{day.label} {time}"


def load_config(path: Path | str | None = None) -> PollConfig:
    """Load the poll configuration.

    Args:
        path: YAML file to read. Defaults to $POLL_CONFIG, then poll.yaml.
              A missing file is not an error; the defaults are used.

    Environment variables POLL_ADMIN_SECRET and POLL_DB_PATH override the
    corresponding fields of the file.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation
    """
    target = Path(path or os.environ.get("POLL_CONFIG") or DEFAULT_CONFIG_PATH)

    raw = {}
    if target.exists():
        try:
            with open(target, "r", encoding="utf-8") as f:
                raw = yaml.load(f) or {}
        except Exception as e:
            raise ConfigError(f"Could not read config file {target}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {target} must contain a mapping")

    raw = dict(raw)
    if "POLL_ADMIN_SECRET" in os.environ:
        raw["admin_secret"] = os.environ["POLL_ADMIN_SECRET"]
    if "POLL_DB_PATH" in os.environ:
        raw["db_path"] = os.environ["POLL_DB_PATH"]

    try:
        return PollConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {target}:\n{e}") from e
