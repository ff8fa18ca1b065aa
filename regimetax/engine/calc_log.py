"""
calc_log.py — the per-run calculation log (audit trail).

A CalculationLog is created fresh for every regime run and only ever appended
to. Entries are frozen LogEntry models, so nothing recorded can be edited
later. This log is data returned with the result; process logging
(logging.getLogger) is a separate channel.
"""
from __future__ import annotations

from typing import Iterator, Optional

from regimetax.engine.schemas import LogCategory, LogEntry


class CalculationLog:
    """Append-only ordered sequence of LogEntry records for one run."""

    def __init__(self, assumed_marginal_rate: float) -> None:
        self._entries: list[LogEntry] = []
        self.assumed_marginal_rate = assumed_marginal_rate

    def add(
        self,
        section: str,
        item: str,
        amount: float,
        cap: Optional[float] = None,
        explanation: str = "",
        tax_saved: Optional[float] = None,
        category: LogCategory = LogCategory.neutral,
    ) -> LogEntry:
        entry = LogEntry(
            section=section,
            item=item,
            amount=amount,
            cap=cap,
            explanation=explanation,
            tax_saved=tax_saved,
            category=category,
        )
        self._entries.append(entry)
        return entry

    def estimate_saving(self, amount: float) -> float:
        """Display estimate of tax saved by reducing income by `amount`."""
        return amount * self.assumed_marginal_rate

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def fmt_inr(amount: float) -> str:
    """₹ with thousands separators, no decimals: 150000 → '₹150,000'."""
    return f"₹{amount:,.0f}"
