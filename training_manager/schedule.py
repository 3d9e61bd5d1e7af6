"""
Training schedule document parsing.

The schedule is a TOML document with two top-level tables:

    [groups]
    team_a = ["alice@example.com", "bob@example.com"]

    [schedule]
    team_a = [
        { from = "2023-01-01", to = "2023-06-30" },
        { from = "2023-09-01", to = "2023-12-31" },
    ]

`groups` maps a Galaxy group name to the email addresses of its members and
`schedule` maps the same group name to the date windows during which the group
is in training. Every parse problem raises ConfigurationError before any
remote call is made.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List

from training_manager.config import ConfigurationError
from training_manager.types import Email, GroupName, InvalidEmailError

logger = logging.getLogger(__name__)

DATE_FORMAT = '%Y-%m-%d'


def today() -> date:
    """Current local calendar date."""
    return date.today()


def parse_date(value: Any) -> date:
    """
    Parse a YYYY-MM-DD string or a native TOML date.

    Raises:
        ConfigurationError: If the value is not a calendar date
    """
    if isinstance(value, datetime):
        raise ConfigurationError(f"Expected a date without time component, got {value.isoformat()}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ConfigurationError(f"Expected a date string, got {type(value).__name__}")
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise ConfigurationError(f"Invalid date {value!r} (expected YYYY-MM-DD): {e}")


@dataclass(frozen=True)
class TimeRange:
    """Inclusive calendar date window. A window whose start is after its end contains nothing."""
    from_date: date
    to_date: date

    def contains(self, day: date) -> bool:
        return self.from_date <= day <= self.to_date

    def __str__(self) -> str:
        return f"{self.from_date.isoformat()}..{self.to_date.isoformat()}"


@dataclass
class TrainingConfig:
    """Parsed schedule document."""
    groups: Dict[GroupName, List[Email]] = field(default_factory=dict)
    schedule: Dict[GroupName, List[TimeRange]] = field(default_factory=dict)


def _table(document: Dict[str, Any], name: str) -> Dict[str, Any]:
    if name not in document:
        raise ConfigurationError(f"Missing [{name}] table in schedule document")
    table = document[name]
    if not isinstance(table, dict):
        raise ConfigurationError(f"[{name}] must be a table")
    return table


def parse_groups(groups: Dict[str, Any]) -> Dict[GroupName, List[Email]]:
    """Parse the groups table into group name -> member emails."""
    groups_map = {}
    for group_name, emails in groups.items():
        if not isinstance(emails, list):
            raise ConfigurationError(f"groups.{group_name} must be an array of email addresses")
        members = []
        for email in emails:
            if not isinstance(email, str):
                raise ConfigurationError(f"groups.{group_name} contains a non-string entry: {email!r}")
            try:
                members.append(Email.parse(email))
            except InvalidEmailError as e:
                raise ConfigurationError(f"groups.{group_name}: {e}")
        groups_map[GroupName.parse(group_name)] = members
    return groups_map


def parse_schedule_item(group_name: str, item: Any) -> TimeRange:
    """Parse a single {from, to} schedule entry."""
    if not isinstance(item, dict):
        raise ConfigurationError(f"schedule.{group_name} entries must be tables with 'from' and 'to'")
    for key in ('from', 'to'):
        if key not in item:
            raise ConfigurationError(f"schedule.{group_name} entry is missing '{key}'")
    try:
        return TimeRange(parse_date(item['from']), parse_date(item['to']))
    except ConfigurationError as e:
        raise ConfigurationError(f"schedule.{group_name}: {e}")


def parse_schedule(schedule: Dict[str, Any]) -> Dict[GroupName, List[TimeRange]]:
    """Parse the schedule table into group name -> activation windows."""
    schedule_map = {}
    for group_name, items in schedule.items():
        if not isinstance(items, list):
            raise ConfigurationError(f"schedule.{group_name} must be an array of date windows")
        schedule_map[GroupName.parse(group_name)] = [
            parse_schedule_item(group_name, item) for item in items
        ]
    return schedule_map


def parse_config(text: str) -> TrainingConfig:
    """
    Parse a schedule document from TOML text.

    Raises:
        ConfigurationError: If the document is malformed
    """
    try:
        document = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in schedule document: {e}")

    groups = parse_groups(_table(document, 'groups'))
    schedule = parse_schedule(_table(document, 'schedule'))
    return TrainingConfig(groups=groups, schedule=schedule)


def read_config(path: str) -> TrainingConfig:
    """
    Read and parse a schedule document from a file.

    Raises:
        ConfigurationError: If the file cannot be read or is malformed
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise ConfigurationError(f"Cannot read schedule file {path}: {e}")

    config = parse_config(text)
    logger.info(f"Loaded schedule from {path}: {len(config.groups)} groups, "
                f"{sum(len(windows) for windows in config.schedule.values())} windows")
    return config
