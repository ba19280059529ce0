from __future__ import annotations
import math
import os

import pytest

from wealthcore.fees import total_annual_fees
from wealthcore.models import AdvisorFeeConfig, Asset, PercentageFee, Platform, Settings
from wealthcore.projection import (
    DEFAULT_GROWTH_RATE,
    DEFAULT_INFLATION_RATE,
    DEFAULT_YEARS,
    RATE_REDUCTIONS,
    calculate_lifetime_fees,
    project_fees,
    simulate_flat_rate,
)


@pytest.fixture
def settings():
    return Settings(
        reporting_currency="ZAR",
        platforms=(Platform("psg", "PSG", PercentageFee(0.5)),),
        advisor_fee=AdvisorFeeConfig(enabled=True, fee=PercentageFee(1.0)),
    )


@pytest.fixture
def assets():
    return [Asset(id="a", name="Balanced Fund", asset_class="SA Equity", currency="ZAR",
                  units=1000, current_price=1000, cost_price=800, platform="psg", ter=0.5)]


@pytest.fixture
def projection(assets, settings):
    return project_fees(1_000_000, total_annual_fees(assets, settings), years=30,
                        inflation_rate=5.0, growth_rate=9.0)


def test_fee_drag_identity(projection):
    assert projection.fee_drag == projection.final_portfolio_without_fees - projection.final_portfolio_value


def test_without_fees_is_pure_compounding(projection):
    for y in projection.yearly:
        assert math.isclose(y.portfolio_without_fees, 1_000_000 * 1.09 ** y.year, rel_tol=1e-12)


def test_first_year_uses_blended_rate(projection):
    first = projection.yearly[0]
    # 0.5% platform + 1.0% advisor + 0.5% TER on the grown balance
    grown = 1_000_000 * 1.09
    assert first.annual_fee == pytest.approx(grown * 0.02)
    assert first.portfolio_value == pytest.approx(grown * 0.98)
    assert first.annual_fee_present_value == pytest.approx(first.annual_fee / 1.05)


def test_cumulative_totals(projection):
    assert len(projection.yearly) == 30
    assert projection.cumulative_fees_nominal == pytest.approx(sum(y.annual_fee for y in projection.yearly))
    assert projection.cumulative_fees_present_value == pytest.approx(
        sum(y.annual_fee_present_value for y in projection.yearly))
    assert projection.cumulative_fees_present_value < projection.cumulative_fees_nominal
    assert projection.yearly[-1].cumulative_fees == projection.cumulative_fees_nominal
    assert projection.summary.average_annual_fee == pytest.approx(projection.cumulative_fees_nominal / 30)


def test_what_if_scenarios(projection):
    assert projection.current_explicit_fee_rate == pytest.approx(1.5)
    assert [s.rate_reduction for s in projection.what_if] == list(RATE_REDUCTIONS)
    for s in projection.what_if:
        assert s.new_rate == pytest.approx(1.5 - s.rate_reduction)
        value, fees = simulate_flat_rate(1_000_000, s.new_rate, 30, 9.0)
        assert s.final_portfolio_value == pytest.approx(value)
        assert s.cumulative_fees == pytest.approx(fees)
        assert s.savings_vs_baseline == pytest.approx(projection.cumulative_fees_nominal - fees)
    assert projection.scenario(0.5) is projection.what_if[1]
    assert projection.scenario(2.0) is None


def test_negative_rate_scenarios_are_skipped(assets):
    cheap = Settings(platforms=(Platform("psg", "PSG", PercentageFee(0.6)),))
    result = project_fees(1_000_000, total_annual_fees(assets, cheap), years=5)
    assert [s.rate_reduction for s in result.what_if] == [0.25, 0.50]


def test_simulate_flat_rate_zero_rate_is_growth():
    value, fees = simulate_flat_rate(100, 0.0, 2, 10.0)
    assert value == pytest.approx(121)
    assert fees == 0


def test_empty_portfolio(settings):
    result = project_fees(0, total_annual_fees([], settings), years=10)
    assert result.final_portfolio_value == 0
    assert result.cumulative_fees_nominal == 0
    assert result.fee_drag == 0
    assert len(result.yearly) == 10
    assert result.summary.fees_as_percent_of_final_portfolio == 0


def test_zero_year_horizon(assets, settings):
    result = project_fees(1_000_000, total_annual_fees(assets, settings), years=0)
    assert result.yearly == ()
    assert result.final_portfolio_value == 1_000_000
    assert result.summary.average_annual_fee == 0
    assert result.yearly_frame().empty


def test_yearly_frame(projection):
    df = projection.yearly_frame()
    assert df.index.name == "year"
    assert list(df.index) == list(range(1, 31))
    assert df.loc[30, "portfolio_value"] == pytest.approx(projection.final_portfolio_value)
    assert "cumulative_fees_present_value" in df.columns


def test_calculate_lifetime_fees_uses_investible_value(assets, settings):
    result = calculate_lifetime_fees(assets, settings, years=3, inflation_rate=4.0, growth_rate=7.0)
    assert result.current_portfolio_value == pytest.approx(1_000_000)
    assert result.projection_years == 3
    assert result.growth_rate == 7.0
    assert result.current_explicit_fees == pytest.approx(15_000)
    assert result.current_annual_fees == pytest.approx(20_000)


def test_invalid_numeric_inputs_count_as_zero(assets, settings):
    fees = total_annual_fees(assets, settings)
    result = project_fees(float("nan"), fees, years=None, inflation_rate=None, growth_rate=float("nan"))
    assert result.current_portfolio_value == 0
    assert result.projection_years == 0
    assert result.growth_rate == 0
    assert result.inflation_rate == 0
    assert result.final_portfolio_value == 0
    assert result.cumulative_fees_nominal == 0
    assert result.yearly == ()


def test_lifetime_fees_do_not_touch_environment(assets, settings, tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("WEALTHCORE_SHOULD_NOT_LOAD=1\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("_WEALTHCORE_ENV_LOADED", "")
    result = calculate_lifetime_fees(assets, settings, years=1)
    assert "WEALTHCORE_SHOULD_NOT_LOAD" not in os.environ
    assert os.environ["_WEALTHCORE_ENV_LOADED"] == ""
    assert result.projection_years == 1


def test_lifetime_defaults():
    assert (DEFAULT_YEARS, DEFAULT_INFLATION_RATE, DEFAULT_GROWTH_RATE) == (30, 5.0, 9.0)
