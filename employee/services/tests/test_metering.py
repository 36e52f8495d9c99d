"""Tests for pricing, the usage meter and the usage report."""

import threading
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from employee.services.ai.pricing import calculate_cost, cost_for, get_model_pricing
from employee.services.metering.meter import UsageMeter, build_usage_report

NOW = datetime(2024, 5, 14, 12, 0, tzinfo=timezone.utc)

PRICES = {
    'gpt-4o-mini': {'input': '0.15', 'output': '0.60'},
    'gpt-4o': {'input': '2.50', 'output': '10.00'},
}


class PricingTest(SimpleTestCase):
    def test_calculate_cost_per_million(self):
        cost = calculate_cost(1_000_000, 500_000, Decimal('0.15'), Decimal('0.60'))
        self.assertEqual(cost, Decimal('0.45'))

    def test_calculate_cost_with_missing_values(self):
        self.assertIsNone(calculate_cost(None, 10, Decimal('1'), Decimal('1')))
        self.assertIsNone(calculate_cost(10, 10, None, Decimal('1')))

    def test_snapshot_id_resolves_to_longest_prefix(self):
        self.assertEqual(
            get_model_pricing('gpt-4o-mini-2024-07-18', PRICES),
            (Decimal('0.15'), Decimal('0.60')),
        )
        self.assertEqual(get_model_pricing('gpt-4o-2024-08-06', PRICES), (Decimal('2.50'), Decimal('10.00')))

    def test_unknown_model_has_no_price(self):
        self.assertEqual(get_model_pricing('mystery-model', PRICES), (None, None))
        self.assertIsNone(cost_for('mystery-model', 10, 10))

    def test_cost_for_uses_settings_table(self):
        self.assertEqual(cost_for('gpt-4o-mini', 1_000_000, 1_000_000), Decimal('0.75'))


class UsageMeterTest(SimpleTestCase):
    def test_record_prices_the_call(self):
        meter = UsageMeter(max_entries=10)
        metric = meter.record('gpt-4o-mini', input_tokens=1_000_000, output_tokens=0, timestamp=NOW)
        self.assertEqual(metric.cost, Decimal('0.15'))
        self.assertEqual(metric.tokens, 1_000_000)

    def test_cache_hit_costs_nothing(self):
        meter = UsageMeter(max_entries=10)
        metric = meter.record('gpt-4o-mini', input_tokens=500, output_tokens=500, cache_hit=True)
        self.assertEqual(metric.tokens, 0)
        self.assertEqual(metric.cost, Decimal('0'))

    def test_unknown_model_records_zero_cost(self):
        meter = UsageMeter(max_entries=10)
        self.assertEqual(meter.record('mystery', input_tokens=10, output_tokens=10).cost, Decimal('0'))

    def test_buffer_evicts_oldest(self):
        meter = UsageMeter(max_entries=3)
        for index in range(5):
            meter.record('gpt-4o-mini', input_tokens=index, output_tokens=0, timestamp=NOW)
        self.assertEqual(len(meter), 3)
        self.assertEqual([m.input_tokens for m in meter.snapshot()], [2, 3, 4])

    def test_stats_only_include_window(self):
        meter = UsageMeter(max_entries=10)
        meter.record('gpt-4o-mini', input_tokens=100, output_tokens=50, timestamp=NOW - timedelta(hours=30))
        meter.record('gpt-4o-mini', input_tokens=100, output_tokens=50, timestamp=NOW - timedelta(hours=1))
        meter.record('gpt-4o', input_tokens=10, output_tokens=0, cache_hit=True, timestamp=NOW)

        stats = meter.get_usage_stats(24, now=NOW)

        self.assertEqual(stats['totalRequests'], 2)
        self.assertEqual(stats['totalTokens'], 150)
        self.assertEqual(stats['cacheHitRate'], 50.0)
        self.assertEqual(stats['byModel']['gpt-4o-mini']['requests'], 1)
        self.assertEqual(stats['byModel']['gpt-4o']['tokens'], 0)

    def test_empty_window(self):
        stats = UsageMeter(max_entries=10).get_usage_stats(24, now=NOW)
        self.assertEqual(stats['totalRequests'], 0)
        self.assertEqual(stats['cacheHitRate'], 0.0)
        self.assertEqual(stats['totalCost'], Decimal('0'))
        self.assertEqual(stats['byModel'], {})

    def test_concurrent_records_are_not_lost(self):
        meter = UsageMeter(max_entries=10_000)

        def worker():
            for _ in range(200):
                meter.record('gpt-4o-mini', input_tokens=1, output_tokens=1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(meter), 1600)


class UsageReportTest(unittest.TestCase):
    def _stats(self, **overrides):
        stats = {
            'totalRequests': 10,
            'totalTokens': 1000,
            'totalCost': Decimal('0.5'),
            'cacheHitRate': 80.0,
            'byModel': {'gpt-4o-mini': {'requests': 10, 'tokens': 1000, 'cost': Decimal('0.5')}},
        }
        stats.update(overrides)
        return stats

    def test_optimized_usage(self):
        report = build_usage_report(self._stats())
        self.assertEqual(report['efficiency'], 'excellent')
        self.assertEqual(report['costEffectiveness'], 'excellent')
        self.assertEqual(report['recommendations'], ['AI usage is optimized and cost-effective!'])
        self.assertEqual(report['totalRequests'], 10)

    def test_low_hit_rate_and_high_cost(self):
        report = build_usage_report(self._stats(
            cacheHitRate=10.0,
            totalCost=Decimal('20'),
            byModel={'gpt-4o': {'requests': 10, 'tokens': 1000, 'cost': Decimal('20')}},
        ))
        self.assertEqual(report['efficiency'], 'poor')
        self.assertEqual(report['costEffectiveness'], 'needs_attention')
        self.assertEqual(len(report['recommendations']), 3)
        self.assertIn('Consider using gpt-4o-mini for simpler tasks to reduce costs.', report['recommendations'])
