"""Credit pricing data and the validated option set it prices."""

from dataclasses import dataclass
from typing import Any, Mapping

from api_cache.errors import ValidationError


@dataclass(frozen=True)
class CreditTable:
    """Provider price list, expressed as data rather than branching logic.

    Attributes:
        base: Cost of a plain request
        dynamic_multiplier: Factor applied for dynamic (JS) rendering
        premium_multiplier: Factor applied for premium proxies
        super_proxy_flat_cost: Flat price of a super proxy request
        ai_surcharge: Added when an AI query or extraction rules are present
        dynamic_premium_cost: Fixed price when dynamic and premium are both
            on. None multiplies the two factors instead.
    """

    base: float = 1
    dynamic_multiplier: float = 5
    premium_multiplier: float = 10
    super_proxy_flat_cost: float = 75
    ai_surcharge: float = 5
    dynamic_premium_cost: float | None = 25


@dataclass(frozen=True)
class CreditOptions:
    """Named options that drive a metered request's price.

    Construction validates the combination, so an instance that exists is
    always priceable.
    """

    dynamic: bool = False
    premium: bool = False
    super_proxy: bool = False
    ai_query: str | None = None
    ai_extract_rules: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.super_proxy and (self.dynamic or self.premium):
            raise ValidationError("Super proxy cannot be used together with dynamic or premium parameters")

        if self.super_proxy and self.uses_ai:
            raise ValidationError("Super proxy cannot be used together with AI query or AI extract rules")

    @property
    def uses_ai(self) -> bool:
        return self.ai_query is not None or self.ai_extract_rules is not None

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None) -> "CreditOptions":
        """Read the priced options out of raw request parameters.

        Accepts both snake_case and the camelCase spellings some providers use.
        Absent or None values mean the option is off.
        """
        params = params or {}

        def pick(*names: str) -> Any:
            for name in names:
                if params.get(name) is not None:
                    return params[name]
            return None

        return cls(
            dynamic=_as_flag(pick("dynamic", "dynamic_rendering", "dynamicRendering")),
            premium=_as_flag(pick("premium", "premium_proxy", "premiumProxy")),
            super_proxy=_as_flag(pick("super_proxy", "superProxy")),
            ai_query=pick("ai_query", "aiQuery"),
            ai_extract_rules=pick("ai_extract_rules", "aiExtractRules"),
        )


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
