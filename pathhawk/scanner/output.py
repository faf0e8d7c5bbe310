"""Rendering of scan outcomes for terminal and JSON-lines output."""

import json
from http import HTTPStatus

from pathhawk.scanner.core.models import ScanOutcome


def status_label(status: int) -> str:
    """``200 OK`` style label; bare number for codes without a phrase."""
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return str(status)


def format_outcome(outcome: ScanOutcome) -> str:
    """
    One display line per outcome.

    Examples:
    - ``[200 OK] http://host/admin [3W, 13C, 1L]``
    - ``[301 Moved Permanently] http://host/old -> /new [0W, 0C, 0L]``
    - ``[ERROR timeout] http://host/slow``
    """
    if outcome.is_error:
        return f"[ERROR {outcome.error_kind}] {outcome.url}: {outcome.error}"

    sizes = f"[{outcome.words}W, {outcome.chars}C, {outcome.lines}L]"
    line = f"[{status_label(outcome.status)}] {outcome.url}"
    if outcome.redirect is not None:
        line += f" -> {outcome.redirect}"
    return f"{line} {sizes}"


def format_json(outcome: ScanOutcome) -> str:
    return json.dumps(outcome.to_dict())
