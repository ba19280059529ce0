"""Platform, advisor and TER fee calculations."""
import unittest
from dataclasses import replace

import pytest

from wealthcore.fees import (
    advisor_fees,
    fee_optimization_recommendations,
    platform_fees,
    structure_fee,
    ter_impact,
    tiered_fee,
    total_annual_fees,
)
from wealthcore.models import (
    AdvisorFeeConfig,
    Asset,
    AssetType,
    CombinedFee,
    FeeFrequency,
    FeeTier,
    FixedFee,
    PercentageFee,
    Platform,
    Settings,
    TieredPercentageFee,
)
from wealthcore.projection import project_fees

INF = float("inf")


def _asset(aid, value, platform=None, **kw):
    base = dict(id=aid, name=aid, asset_class="SA Equity", currency="ZAR",
                units=1, current_price=value, cost_price=value, platform=platform)
    base.update(kw)
    return Asset(**base)


def _settings(*platforms, advisor=None):
    return Settings(reporting_currency="ZAR", exchange_rates={"USD": 20.0},
                    platforms=tuple(platforms), advisor_fee=advisor or AdvisorFeeConfig())


class TestStructureFee(unittest.TestCase):

    def setUp(self):
        self.settings = _settings()

    def test_percentage(self):
        self.assertAlmostEqual(structure_fee(PercentageFee(0.5), 1_000_000, self.settings), 5000)

    def test_tiered_is_marginal(self):
        tiers = TieredPercentageFee((FeeTier(500000, 1.0), FeeTier(INF, 0.5)))
        self.assertAlmostEqual(structure_fee(tiers, 800_000, self.settings), 6500)

    def test_tiered_within_first_band(self):
        tiers = (FeeTier(500000, 1.0), FeeTier(INF, 0.5))
        self.assertAlmostEqual(tiered_fee(200_000, tiers), 2000)
        self.assertEqual(tiered_fee(0, tiers), 0)
        self.assertEqual(tiered_fee(100, ()), 0)

    def test_fixed_frequencies(self):
        monthly = FixedFee(50, "ZAR", FeeFrequency.MONTHLY)
        quarterly = FixedFee(50, "ZAR", FeeFrequency.QUARTERLY)
        annual = FixedFee(50, "ZAR", FeeFrequency.ANNUAL)
        self.assertAlmostEqual(structure_fee(monthly, 0, self.settings), 600)
        self.assertAlmostEqual(structure_fee(quarterly, 123, self.settings), 200)
        self.assertAlmostEqual(structure_fee(annual, 1e9, self.settings), 50)

    def test_fixed_converts_currency(self):
        fee = FixedFee(5, "USD", FeeFrequency.MONTHLY)
        self.assertAlmostEqual(structure_fee(fee, 0, self.settings), 5 * 12 * 20.0)

    def test_fixed_without_currency_is_reporting(self):
        self.assertAlmostEqual(structure_fee(FixedFee(10, None, FeeFrequency.ANNUAL), 0, self.settings), 10)

    def test_combined(self):
        fee = CombinedFee(PercentageFee(0.25), FixedFee(10, "ZAR", FeeFrequency.MONTHLY))
        self.assertAlmostEqual(structure_fee(fee, 100_000, self.settings), 250 + 120)

    def test_unknown_structure_raises(self):
        with self.assertRaises(TypeError):
            structure_fee(object(), 100, self.settings)


def test_platform_fees_aggregate_and_skip_unmatched():
    psg = Platform("psg", "PSG", PercentageFee(0.5))
    ee = Platform("ee", "Easy Equities", FixedFee(50, "ZAR", FeeFrequency.MONTHLY))
    bare = Platform("bare", "No Fee")
    settings = _settings(psg, ee, bare)
    assets = [
        _asset("a", 1_000_000, "psg"),
        _asset("b", 200_000, "psg"),
        _asset("c", 10_000, "ee"),
        _asset("d", 5_000, "bare"),
        _asset("e", 99_999, "ghost"),
        _asset("f", 99_999),
        _asset("home", 2_000_000, "psg", asset_type=AssetType.NON_INVESTIBLE),
    ]
    result = platform_fees(assets, settings)
    by_id = {p.platform_id: p for p in result.by_platform}
    assert set(by_id) == {"psg", "ee", "bare"}
    assert by_id["psg"].fee == pytest.approx(6000)
    assert by_id["psg"].asset_count == 2
    assert by_id["psg"].platform_name == "PSG"
    assert by_id["ee"].fee == pytest.approx(600)
    assert by_id["bare"].fee == 0
    assert result.total == pytest.approx(6600)
    assert [line.asset_id for line in by_id["psg"].assets] == ["a", "b"]


def test_platform_fees_empty():
    result = platform_fees([], _settings())
    assert result.total == 0
    assert result.by_platform == ()


class TestAdvisorFees(unittest.TestCase):

    def setUp(self):
        self.assets = [
            _asset("a", 600_000),
            _asset("b", 400_000, exclude_from_advisor_fee=True),
            _asset("car", 300_000, asset_type=AssetType.NON_INVESTIBLE),
        ]

    def test_disabled_is_zero(self):
        settings = _settings(advisor=AdvisorFeeConfig(enabled=False, fee=PercentageFee(1.0)))
        fees = advisor_fees(self.assets, settings)
        self.assertEqual(fees.total, 0)
        self.assertEqual(fees.applied_to_value, 0)
        self.assertEqual(fees.asset_count, 0)

    def test_percentage_respects_opt_out(self):
        settings = _settings(advisor=AdvisorFeeConfig(enabled=True, fee=PercentageFee(1.0)))
        fees = advisor_fees(self.assets, settings)
        self.assertAlmostEqual(fees.total, 6000)
        self.assertAlmostEqual(fees.applied_to_value, 600_000)
        self.assertEqual(fees.asset_count, 1)
        self.assertEqual(fees.rate, 1.0)

    def test_fixed_is_independent_of_value(self):
        fee = FixedFee(1000, "USD", FeeFrequency.ANNUAL)
        settings = _settings(advisor=AdvisorFeeConfig(enabled=True, fee=fee))
        self.assertAlmostEqual(advisor_fees(self.assets, settings).total, 20_000)
        self.assertAlmostEqual(advisor_fees([], settings).total, 20_000)
        self.assertIsNone(advisor_fees([], settings).rate)


def test_ter_impact_is_value_weighted():
    assets = [_asset("a", 750, ter=1.0), _asset("b", 250, ter=0.2),
              _asset("h", 1e6, ter=5.0, asset_type=AssetType.NON_INVESTIBLE)]
    ter = ter_impact(assets, _settings())
    assert ter.total_value == pytest.approx(1000)
    assert ter.annual_impact == pytest.approx(7.5 + 0.5)
    assert ter.average_ter == pytest.approx(0.8)
    assert ter_impact([], _settings()).average_ter == 0


def test_total_annual_fees():
    psg = Platform("psg", "PSG", PercentageFee(0.5))
    settings = _settings(psg, advisor=AdvisorFeeConfig(enabled=True, fee=PercentageFee(1.0)))
    fees = total_annual_fees([_asset("a", 1_000_000, "psg", ter=0.3)], settings)
    assert fees.platform_fees.total == pytest.approx(5000)
    assert fees.advisor_fees.total == pytest.approx(10_000)
    assert fees.total_explicit_fees == pytest.approx(15_000)
    assert fees.total_with_ter == pytest.approx(18_000)


def test_recommendations_flag_expensive_portfolio():
    psg = Platform("psg", "PSG", PercentageFee(1.5))
    settings = _settings(psg, advisor=AdvisorFeeConfig(enabled=True, fee=PercentageFee(1.25)))
    assets = [_asset("a", 5_000_000, "psg", ter=1.2)]
    fees = total_annual_fees(assets, settings)
    projection = project_fees(5_000_000, fees, years=30)
    limits = {"high_total_fees": 100000, "advisor_rate_ceiling": 1.0,
              "ter_ceiling": 1.0, "reduction_savings_floor": 500000}
    recs = fee_optimization_recommendations(fees, projection, limits)
    titles = [r.title for r in recs]
    assert "High total fees detected" in titles
    assert "Advisor fee above 1%" in titles
    assert "High average TER" in titles
    assert "Significant savings opportunity" in titles
    priorities = [r.priority for r in recs]
    assert priorities == sorted(priorities, key=lambda p: p != "high")


def test_recommendations_quiet_for_cheap_portfolio():
    settings = _settings(Platform("luno", "Luno", PercentageFee(0.0)))
    fees = total_annual_fees([_asset("a", 10_000, "luno", ter=0.1)], settings)
    projection = project_fees(10_000, fees, years=10)
    limits = {"high_total_fees": 100000, "advisor_rate_ceiling": 1.0,
              "ter_ceiling": 1.0, "reduction_savings_floor": 500000}
    assert fee_optimization_recommendations(fees, projection, limits) == []


def test_fee_records_serialise():
    fees = total_annual_fees([_asset("a", 100, "psg")], _settings(Platform("psg", "PSG", PercentageFee(1.0))))
    d = fees.to_dict()
    assert d["platform_fees"]["by_platform"][0]["platform_id"] == "psg"
    assert replace(fees.ter_impact, note="x").note == "x"


def test_fixed_platform_fee_charged_per_asset():
    ee = Platform("ee", "Easy Equities", FixedFee(50, "ZAR", FeeFrequency.MONTHLY))
    result = platform_fees([_asset("a", 10_000, "ee"), _asset("b", 90_000, "ee")], _settings(ee))
    summary = result.by_platform[0]
    assert summary.asset_count == 2
    assert [line.fee for line in summary.assets] == [pytest.approx(600), pytest.approx(600)]
    assert result.total == pytest.approx(1200)


def test_monthly_advisor_fixed_fee_is_annualised():
    fee = FixedFee(1000, "ZAR", FeeFrequency.MONTHLY)
    settings = _settings(advisor=AdvisorFeeConfig(enabled=True, fee=fee))
    assert advisor_fees([_asset("a", 1)], settings).total == pytest.approx(12_000)


def test_fixed_fee_accepts_frequency_strings():
    assert FixedFee(50, "ZAR", "monthly").frequency == FeeFrequency.MONTHLY
    assert FixedFee(50, "ZAR", " Quarterly ").frequency == FeeFrequency.QUARTERLY
    assert structure_fee(FixedFee(25, None, "annual"), 0, _settings()) == pytest.approx(25)
    with pytest.raises(ValueError):
        FixedFee(50, "ZAR", "weekly")


def test_recommendations_default_limits_fill_gaps():
    psg = Platform("psg", "PSG", PercentageFee(1.5))
    fees = total_annual_fees([_asset("a", 10_000_000, "psg")], _settings(psg))
    projection = project_fees(10_000_000, fees, years=30)
    titles = [r.title for r in fee_optimization_recommendations(fees, projection)]
    assert "High total fees detected" in titles
    # a partial override keeps the other built-in levels
    titles = [r.title for r in fee_optimization_recommendations(fees, projection, {"high_total_fees": 1e12})]
    assert "High total fees detected" not in titles
    assert "Significant savings opportunity" in titles
