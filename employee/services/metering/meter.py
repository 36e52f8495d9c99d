"""
In-memory usage meter for provider calls.

An approximate, non-durable metering stream: the most recent
``USAGE_METER_MAX_ENTRIES`` metrics are kept in a bounded deque and the oldest
are evicted first. It is not a ledger of record.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from django.conf import settings
from django.utils import timezone

from employee.services.ai.pricing import cost_for

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10_000


@dataclass(frozen=True)
class UsageMetric:
    model: str
    input_tokens: int
    output_tokens: int
    cost: Decimal
    timestamp: datetime
    call_type: str
    cache_hit: bool

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class UsageMeter:
    """Thread-safe ring buffer of :class:`UsageMetric` records."""

    def __init__(self, max_entries: Optional[int] = None) -> None:
        if max_entries is None:
            max_entries = getattr(settings, 'USAGE_METER_MAX_ENTRIES', DEFAULT_MAX_ENTRIES)
        self._metrics: deque[UsageMetric] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def record(
        self,
        model: str,
        *,
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
        call_type: str = 'chat',
        cache_hit: bool = False,
        timestamp: Optional[datetime] = None,
    ) -> UsageMetric:
        """Append one metric. Cache hits consume no tokens and cost nothing."""
        if cache_hit:
            input_tokens = output_tokens = 0
        cost = cost_for(model, input_tokens or 0, output_tokens or 0) or Decimal('0')
        metric = UsageMetric(
            model=model,
            input_tokens=input_tokens or 0,
            output_tokens=output_tokens or 0,
            cost=cost,
            timestamp=timestamp or timezone.now(),
            call_type=call_type,
            cache_hit=cache_hit,
        )
        with self._lock:
            self._metrics.append(metric)
        logger.debug(
            'Usage recorded: %s %s tokens=%d cost=%s cache_hit=%s',
            call_type, model, metric.tokens, cost, cache_hit,
        )
        return metric

    def snapshot(self) -> list[UsageMetric]:
        with self._lock:
            return list(self._metrics)

    def get_usage_stats(self, window_hours: float = 24, now: Optional[datetime] = None) -> dict[str, Any]:
        """Aggregate the metrics recorded within the last *window_hours*.

        Returns:
            ``{totalRequests, totalTokens, totalCost, cacheHitRate, byModel}``
            where ``cacheHitRate`` is a percentage and ``byModel`` maps each
            model to its ``requests``, ``tokens`` and ``cost``.
        """
        cutoff = (now or timezone.now()) - timedelta(hours=window_hours)
        recent = [metric for metric in self.snapshot() if metric.timestamp >= cutoff]

        by_model: dict[str, dict[str, Any]] = {}
        for metric in recent:
            entry = by_model.setdefault(metric.model, {'requests': 0, 'tokens': 0, 'cost': Decimal('0')})
            entry['requests'] += 1
            entry['tokens'] += metric.tokens
            entry['cost'] += metric.cost

        hits = sum(1 for metric in recent if metric.cache_hit)
        return {
            'totalRequests': len(recent),
            'totalTokens': sum(metric.tokens for metric in recent),
            'totalCost': sum((metric.cost for metric in recent), Decimal('0')),
            'cacheHitRate': round(hits / len(recent) * 100, 2) if recent else 0.0,
            'byModel': by_model,
        }


def _rate(value: float, thresholds: tuple[float, float, float], labels: tuple[str, str, str, str]) -> str:
    for threshold, label in zip(thresholds, labels):
        if value > threshold:
            return label
    return labels[-1]


def build_usage_report(stats: dict[str, Any]) -> dict[str, Any]:
    """Decorate usage *stats* with efficiency ratings and recommendations."""
    total_cost = stats['totalCost']
    efficiency = _rate(stats['cacheHitRate'], (70, 50, 30), ('excellent', 'good', 'fair', 'poor'))
    if total_cost < 1:
        cost_effectiveness = 'excellent'
    elif total_cost < 5:
        cost_effectiveness = 'good'
    elif total_cost < 10:
        cost_effectiveness = 'fair'
    else:
        cost_effectiveness = 'needs_attention'

    recommendations = []
    if stats['totalRequests'] and stats['cacheHitRate'] < 30:
        recommendations.append('Low AI cache hit rate. Consider increasing cache TTL for stable prompts.')
    if total_cost > 10:
        recommendations.append('High AI costs detected. Consider optimizing prompts or using caching more effectively.')
    if stats['totalRequests'] > 1000:
        recommendations.append('High AI usage volume. Monitor for potential rate limiting.')
    premium = [
        usage for model, usage in stats['byModel'].items()
        if model.startswith('gpt-4o') and not model.startswith('gpt-4o-mini')
    ]
    if premium and total_cost and sum(u['cost'] for u in premium) > total_cost * Decimal('0.8'):
        recommendations.append('Consider using gpt-4o-mini for simpler tasks to reduce costs.')
    if not recommendations:
        recommendations.append('AI usage is optimized and cost-effective!')

    return {
        **stats,
        'efficiency': efficiency,
        'costEffectiveness': cost_effectiveness,
        'recommendations': recommendations,
    }
