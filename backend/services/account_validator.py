"""
Account update validation.

The pydantic schema in ``models.account`` is the single source of truth for
supported structure, fields and values. These helpers run it and turn
failures into flat, loggable issue strings instead of exceptions, so callers
can decide to drop an event rather than abort. Logging is left to them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from models.account import AccountUpdate


def _format_issues(exc: ValidationError) -> list[str]:
    issues: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        issues.append(f"{location}: {error.get('msg', 'invalid value')}")
    return issues


def validate_account_update(event: Union[AccountUpdate, dict, None]) -> list[str]:
    """Validate an account update and return its issues, empty when valid.

    Accepts a built ``AccountUpdate`` (re-checked field by field) or a raw
    mapping using wire or Python field names.
    """
    if event is None:
        return ["<root>: account update is missing"]

    if isinstance(event, AccountUpdate):
        payload = {name: getattr(event, name, None) for name in AccountUpdate.model_fields}
    elif isinstance(event, dict):
        payload = event
    else:
        return [f"<root>: unsupported account update type {type(event).__name__}"]

    try:
        AccountUpdate.model_validate(payload)
    except ValidationError as exc:
        return _format_issues(exc)
    return []


def validate_all(events: Iterable[Union[AccountUpdate, dict]]) -> list[str]:
    """Validate a batch of account updates, issues are prefixed with the item index."""
    issues: list[str] = []
    for index, event in enumerate(events):
        issues.extend(f"[{index}] {issue}" for issue in validate_account_update(event))
    return issues


@dataclass
class ParsedUpdates:
    """Result of parsing a raw list of account updates"""

    events: list[AccountUpdate] = field(default_factory=list)
    validation_errors: list[str] = field(default_factory=list)


def parse_account_update(raw: Any) -> tuple[Optional[AccountUpdate], list[str]]:
    """Build an ``AccountUpdate`` from a raw mapping, or return why it cannot be built."""
    if not isinstance(raw, dict):
        return None, [f"<root>: expected an object, got {type(raw).__name__}"]
    try:
        return AccountUpdate.model_validate(raw), []
    except ValidationError as exc:
        return None, _format_issues(exc)


def parse_account_updates(raw_items: Iterable[Any]) -> ParsedUpdates:
    """Build account updates from raw JSON items, keeping only the valid ones."""
    result = ParsedUpdates()
    for index, raw in enumerate(raw_items):
        event, issues = parse_account_update(raw)
        if event is None:
            result.validation_errors.extend(f"[{index}] {issue}" for issue in issues)
            continue
        result.events.append(event)
    return result
