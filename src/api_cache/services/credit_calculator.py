"""Credit pricing for metered APIs.

Pricing is a pure function of the request options and a CreditTable; it
does not depend on whether the call succeeds.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Mapping

from api_cache.entities import CreditOptions, CreditTable


def calculate_credits(options: CreditOptions, table: CreditTable | None = None) -> float:
    """Price one request.

    - super proxy: flat ``super_proxy_flat_cost``
    - otherwise ``base`` times the dynamic and premium multipliers, or
      ``dynamic_premium_cost`` when both are on and the table fixes it
    - plus ``ai_surcharge`` for AI queries or extraction rules

    Example:
        ```python
        calculate_credits(CreditOptions(dynamic=True, premium=True, ai_query="price?"))  # 30
        ```
    """
    table = table or CreditTable()

    if options.super_proxy:
        return table.super_proxy_flat_cost

    if options.dynamic and options.premium and table.dynamic_premium_cost is not None:
        credits = table.dynamic_premium_cost
    else:
        credits = table.base
        if options.dynamic:
            credits *= table.dynamic_multiplier
        if options.premium:
            credits *= table.premium_multiplier

    if options.uses_ai:
        credits += table.ai_surcharge

    return credits


class CreditCalculator:
    """Prices raw request parameters against one provider's table."""

    def __init__(self, table: CreditTable | None = None) -> None:
        self._table = table or CreditTable()

    @property
    def table(self) -> CreditTable:
        return self._table

    def validate(self, params: Mapping[str, Any] | None) -> CreditOptions:
        """Parse and validate the priced options.

        Raises:
            ValidationError: For mutually exclusive options
        """
        return CreditOptions.from_params(params)

    def credits_for(self, params: Mapping[str, Any] | None) -> float:
        return calculate_credits(self.validate(params), self._table)


@dataclass
class CreditLedger:
    """Running credit totals per client, for dispatched calls only."""

    totals: dict[str, float] = field(default_factory=dict)
    calls: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, client_name: str, credits: float) -> None:
        with self._lock:
            self.totals[client_name] = self.totals.get(client_name, 0.0) + max(0.0, credits)
            self.calls[client_name] = self.calls.get(client_name, 0) + 1

    def summary(self) -> dict[str, Any]:
        return {
            "clients": {
                name: {"credits": self.totals[name], "calls": self.calls[name]} for name in sorted(self.totals)
            },
            "total_credits": sum(self.totals.values()),
        }
