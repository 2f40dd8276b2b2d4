"""Session recency, expiry, bulk deletion, export, and text reports.

Classes
-------
- SessionLifecycle  — update-on-use, expiry sweep, bulk clear, export

Functions
---------
- format_relative_time  — "just now" / "N minutes ago" / ... / a date
- format_session_list   — plain-text listing of several records
- format_session_info   — plain-text detail view of one record
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Literal, Sequence

from askshell.config import PricingRates, SessionSettings
from askshell.session.serializer import RecordSerializer
from askshell.session.state import SessionKind, SessionRecord, TokenUsage, utcnow
from askshell.session.store import SessionNotFoundError, SessionStore
from askshell.storage.async_base import StorageError

logger = logging.getLogger(__name__)

ExportFormat = Literal["text", "json", "yaml"]

_RULE = "=" * 43
_KIND_LABELS: dict[SessionKind, str] = {
    SessionKind.GLOBAL: "[global]",
    SessionKind.SHELL: "[shell]",
    SessionKind.NAMED: "[named]",
}


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''} ago"


def format_relative_time(moment: datetime, now: datetime | None = None) -> str:
    """Render ``moment`` relative to ``now``.

    Under a minute is "just now", then minutes, hours, and days; from 30
    days on the absolute local date is shown.
    """
    elapsed = (now or utcnow()) - moment
    minutes = int(elapsed.total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return _plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    days = hours // 24
    if days < 30:
        return _plural(days, "day")
    return moment.astimezone().strftime("%Y-%m-%d")


def format_session_list(
    records: Sequence[SessionRecord],
    active_name: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render ``records`` as a listing; the active one is starred."""
    if not records:
        return "No sessions found."

    lines = [_RULE, "         Sessions", _RULE, ""]
    for record in records:
        marker = " *" if record.name == active_name else ""
        lines.append(f"{_KIND_LABELS[record.kind]} {record.name}{marker}")
        lines.append(f"   Messages: {record.message_count} | Tokens: {record.total_tokens:,}")
        lines.append(f"   Last used: {format_relative_time(record.last_used, now)}")
        if record.total_cost > 0:
            lines.append(f"   Cost: ${record.total_cost:.4f}")
        lines.append("")
    lines.append(_RULE)
    return "\n".join(lines)


def format_session_info(record: SessionRecord) -> str:
    """Render every field of ``record`` worth showing to a user."""
    lines = [
        _RULE,
        "         Session Information",
        _RULE,
        "",
        f"Name: {record.name}",
        f"Type: {record.kind.value}",
        f"ID: {record.id}",
    ]
    if record.resume_token:
        lines.append(f"Resume Token: {record.resume_token}")
    lines += [
        f"Created: {record.created.astimezone():%Y-%m-%d %H:%M:%S}",
        f"Last Used: {record.last_used.astimezone():%Y-%m-%d %H:%M:%S}",
        f"Messages: {record.message_count}",
        f"Total Tokens: {record.total_tokens:,}",
        f"Total Cost: ${record.total_cost:.4f}",
    ]
    if record.process_id is not None:
        lines.append(f"Shell PID: {record.process_id}")
    if record.override_prompt:
        lines.append(f"Custom System Prompt: {record.override_prompt[:60]}...")
    if record.override_tools:
        lines.append(f"Custom Tools: {', '.join(record.override_tools)}")
    lines += ["", _RULE]
    return "\n".join(lines)


def _export_report(record: SessionRecord, exported_at: datetime) -> str:
    lines = [
        _RULE,
        f"Session Export: {record.name}",
        _RULE,
        "",
        f"Exported: {exported_at.astimezone():%Y-%m-%d %H:%M:%S}",
        f"Session Type: {record.kind.value}",
        f"Session ID: {record.id}",
        f"Created: {record.created.astimezone():%Y-%m-%d %H:%M:%S}",
        f"Last Used: {record.last_used.astimezone():%Y-%m-%d %H:%M:%S}",
        f"Total Messages: {record.message_count}",
        f"Total Tokens: {record.total_tokens:,}",
        f"Total Cost: ${record.total_cost:.4f}",
        f"Resumable: {'yes' if record.resume_token else 'no'}",
        "",
        _RULE,
        "",
        "(The conversation transcript is kept by the engine and is not part of this export.)",
    ]
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class SessionLifecycle:
    """Recency and retention policy over a ``SessionStore``.

    Parameters
    ----------
    store:
        The store to read and mutate.
    pricing:
        Rates used to estimate the cost of each exchange.
    """

    def __init__(self, store: SessionStore, pricing: PricingRates | None = None) -> None:
        self._store = store
        self._pricing = pricing or PricingRates()
        self._serializer = RecordSerializer()

    async def record_exchange_outcome(
        self,
        record: SessionRecord,
        *,
        ephemeral: bool,
        turns: int,
        usage: TokenUsage,
        errored: bool = False,
    ) -> SessionRecord:
        """Fold a completed exchange into ``record`` and persist it.

        Ephemeral exchanges leave the record untouched and write nothing.
        The cost is computed with the current rates and frozen into the
        record.
        """
        if ephemeral:
            logger.debug("Ephemeral exchange on %r; session left unchanged", record.name)
            return record
        cost = self._pricing.cost(usage.input_tokens, usage.output_tokens)
        record.apply_exchange(turns, usage, cost)
        await self._store.save(record)
        if errored:
            logger.debug("Exchange on %r reported an error; usage still recorded", record.name)
        return record

    async def sweep_expired(self, settings: SessionSettings, now: datetime | None = None) -> int:
        """Delete idle shell and named sessions; return how many were removed.

        Idle time is counted in whole days since ``last_used``.  A session
        is removed only once that count exceeds its kind's threshold.  The
        global session is never removed.
        """
        if not settings.auto_cleanup:
            return 0
        thresholds = {
            SessionKind.SHELL: settings.shell_session_expiry_days,
            SessionKind.NAMED: settings.named_session_expiry_days,
        }
        now = now or utcnow()
        removed = 0
        for record in await self._store.list_all():
            threshold = thresholds.get(record.kind)
            if threshold is None:
                continue
            idle_days = (now - record.last_used).days
            if idle_days > threshold and await self._store.delete(record.name):
                logger.debug("Expired %s session %r after %d idle days", record.kind.value, record.name, idle_days)
                removed += 1
        return removed

    async def delete_all(self) -> int:
        """Delete every stored session, unreadable entries included."""
        removed = 0
        for name in await self._store.names():
            if await self._store.delete(name):
                removed += 1
        return removed

    async def delete_by_kind(self, kind: SessionKind) -> int:
        removed = 0
        for record in await self._store.list_all():
            if record.kind is kind and await self._store.delete(record.name):
                removed += 1
        return removed

    async def export(
        self,
        name: str,
        destination: str | Path,
        fmt: ExportFormat = "text",
    ) -> Path:
        """Write the metadata of session ``name`` to ``destination``.

        Raises
        ------
        SessionNotFoundError
            If no session named ``name`` exists.
        StorageError
            If ``destination`` cannot be written.
        """
        record = await self._store.load(name)
        if record is None:
            raise SessionNotFoundError(name)

        if fmt == "text":
            body = _export_report(record, utcnow())
        else:
            body = self._serializer.serialize(record, fmt)

        path = Path(destination)
        try:
            await asyncio.to_thread(path.write_text, body, encoding="utf-8")
        except OSError as exc:
            raise StorageError(name, "export", exc.strerror or str(exc)) from exc
        logger.debug("Exported %r to %s as %s", name, path, fmt)
        return path
