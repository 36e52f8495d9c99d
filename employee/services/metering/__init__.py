"""Usage metering for provider calls."""

from .meter import UsageMeter, UsageMetric, build_usage_report

__all__ = ['UsageMeter', 'UsageMetric', 'build_usage_report']
