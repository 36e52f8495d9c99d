"""Cost calculation utilities for AI token usage."""

from decimal import Decimal
from typing import Mapping, Optional

from django.conf import settings


def calculate_cost(
    input_tokens: Optional[int],
    output_tokens: Optional[int],
    input_price_per_1m: Optional[Decimal],
    output_price_per_1m: Optional[Decimal],
) -> Optional[Decimal]:
    """Return the USD cost for a request or ``None`` if any value is missing.

    Args:
        input_tokens: Number of tokens in the prompt.
        output_tokens: Number of tokens in the completion.
        input_price_per_1m: Price per 1 million input tokens (USD).
        output_price_per_1m: Price per 1 million output tokens (USD).

    Returns:
        Decimal cost or ``None`` when tokens or prices are unavailable.
    """
    if (
        input_tokens is None
        or output_tokens is None
        or input_price_per_1m is None
        or output_price_per_1m is None
    ):
        return None

    cost = (
        Decimal(input_tokens) / Decimal(1_000_000) * input_price_per_1m
        + Decimal(output_tokens) / Decimal(1_000_000) * output_price_per_1m
    )
    return cost


def get_model_pricing(
    model_id: str,
    price_table: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Return ``(input, output)`` USD prices per 1M tokens for *model_id*.

    Dated snapshot ids (``gpt-4o-mini-2024-07-18``) resolve to the longest
    configured prefix. Unknown models return ``(None, None)``.
    """
    table = price_table if price_table is not None else getattr(settings, 'AI_MODEL_PRICING', {})
    candidates = [name for name in table if model_id == name or model_id.startswith(f'{name}-')]
    if not candidates:
        return None, None
    prices = table[max(candidates, key=len)]
    return Decimal(str(prices['input'])), Decimal(str(prices['output']))


def cost_for(model_id: str, input_tokens: Optional[int], output_tokens: Optional[int]) -> Optional[Decimal]:
    """Price a call against the configured ``AI_MODEL_PRICING`` table."""
    input_price, output_price = get_model_pricing(model_id)
    return calculate_cost(input_tokens, output_tokens, input_price, output_price)
