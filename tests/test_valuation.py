from datetime import date

import pytest

from stock_tracker.errors import DataIntegrityError
from stock_tracker.portfolio.models import PortfolioDefinition
from stock_tracker.portfolio.valuation import (
    compute_holdings,
    compute_portfolio_values,
    compute_share_counts,
    group_by_date,
    latest_values,
    resolve_prices,
)
from stock_tracker.prices.models import PricePoint, PriceSeries


def _series(ticker: str, rows: list[tuple[str, float]]) -> PriceSeries:
    return PriceSeries.from_records(ticker, [{"date": day, "price": price} for day, price in rows])


def _scenario_prices() -> dict[str, PriceSeries]:
    return {
        "AAA": _series("AAA", [("2025-01-02", 100.0), ("2025-02-01", 110.0)]),
        "BBB": _series("BBB", [("2025-01-02", 50.0)]),
    }


def test_share_counts_come_from_first_price() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000, "BBB": 70000}})
    shares = compute_share_counts(_scenario_prices(), portfolios)
    assert shares["P"]["AAA"] == pytest.approx(300.0)
    assert shares["P"]["BBB"] == pytest.approx(1400.0)
    assert shares["P"]["AAA"] * 100.0 == pytest.approx(30000.0)


def test_values_forward_fill_missing_closes() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000, "BBB": 70000}})
    values = compute_portfolio_values(_scenario_prices(), portfolios)
    assert [point.date for point in values] == [date(2025, 1, 2), date(2025, 2, 1)]
    assert values[0].value == pytest.approx(100_000.0)
    assert values[1].value == pytest.approx(103_000.0)


def test_late_listing_ticker_is_carried_at_invested_dollars() -> None:
    prices = {
        "AAA": _series("AAA", [("2025-01-02", 100.0)]),
        "CCC": _series("CCC", [("2025-01-03", 20.0), ("2025-01-06", 30.0)]),
    }
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 10000, "CCC": 5000}})
    values = compute_portfolio_values(prices, portfolios)
    assert [round(point.value, 6) for point in values] == [15000.0, 15000.0, 17500.0]


def test_unpriced_ticker_counts_invested_amount_indefinitely() -> None:
    prices = {"AAA": _series("AAA", [("2025-01-02", 100.0), ("2025-01-03", 120.0)])}
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 10000, "ZZZ": 2500}})
    values = compute_portfolio_values(prices, portfolios)
    assert [point.value for point in values] == pytest.approx([12500.0, 14500.0])


def test_cash_is_added_verbatim_every_day() -> None:
    prices = {"AAA": _series("AAA", [("2025-01-02", 10.0), ("2025-01-03", 5.0)])}
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 1000, "cash_amount": 400}})
    values = compute_portfolio_values(prices, portfolios)
    assert [point.value for point in values] == pytest.approx([1400.0, 900.0])


def test_zero_investment_contributes_nothing() -> None:
    prices = {"AAA": _series("AAA", [("2025-01-02", 10.0), ("2025-01-03", 50.0)])}
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 0, "cash_amount": 100}})
    values = compute_portfolio_values(prices, portfolios)
    assert [point.value for point in values] == [100.0, 100.0]


def test_constant_price_keeps_value_equal_to_investment() -> None:
    rows = [(f"2025-03-{day:02d}", 42.5) for day in range(3, 15)]
    portfolios = PortfolioDefinition.from_mapping({"Flat": {"AAA": 12345.67}})
    values = compute_portfolio_values({"AAA": _series("AAA", rows)}, portfolios)
    assert len(values) == len(rows)
    assert all(point.value == pytest.approx(12345.67) for point in values)


def test_one_point_per_date_and_portfolio_in_date_order() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000}, "Q": {"BBB": 500, "cash_amount": 10}})
    values = compute_portfolio_values(_scenario_prices(), portfolios)
    assert [(p.date.isoformat(), p.portfolio_name) for p in values] == [
        ("2025-01-02", "P"),
        ("2025-01-02", "Q"),
        ("2025-02-01", "P"),
        ("2025-02-01", "Q"),
    ]
    grouped = group_by_date(values)
    assert grouped[1][1] == {"P": pytest.approx(33000.0), "Q": pytest.approx(510.0)}
    assert latest_values(values) == {"P": pytest.approx(33000.0), "Q": pytest.approx(510.0)}


def test_explicit_dates_before_first_close_use_dollar_fallback() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000, "BBB": 70000}})
    dates = [date(2024, 12, 31), date(2025, 1, 15), date(2025, 3, 1)]
    values = compute_portfolio_values(_scenario_prices(), portfolios, dates)
    assert [point.value for point in values] == pytest.approx([100_000.0, 100_000.0, 103_000.0])


def test_resolved_price_present_from_first_close_onwards() -> None:
    prices = {"AAA": _series("AAA", [("2025-01-06", 10.0), ("2025-01-08", 11.0)])}
    dates = [date(2025, 1, day) for day in range(2, 11)]
    resolved = resolve_prices(prices, ["AAA"], dates)["AAA"]
    first = dates.index(date(2025, 1, 6))
    assert all(price is None for price in resolved[:first])
    assert all(price is not None for price in resolved[first:])
    assert resolved[-1] == 11.0


def test_missing_ticker_map_entry_is_tolerated() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 100}})
    assert compute_portfolio_values({}, portfolios) == []
    values = compute_portfolio_values({}, portfolios, [date(2025, 1, 2)])
    assert values[0].value == 100.0


def test_repeat_calls_are_identical() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000, "BBB": 70000, "cash_amount": 5}})
    prices = _scenario_prices()
    assert compute_portfolio_values(prices, portfolios) == compute_portfolio_values(prices, portfolios)


def test_unsorted_series_raises_data_integrity_error() -> None:
    unsorted = [PricePoint(date(2025, 1, 3), 10.0), PricePoint(date(2025, 1, 2), 11.0)]
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 100}})
    with pytest.raises(DataIntegrityError) as excinfo:
        compute_portfolio_values({"AAA": unsorted}, portfolios)
    assert excinfo.value.ticker == "AAA"


def test_duplicate_dates_in_sequence_raise() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000}})
    with pytest.raises(DataIntegrityError):
        compute_portfolio_values(_scenario_prices(), portfolios, [date(2025, 1, 2), date(2025, 1, 2)])


def test_holdings_breakdown_reports_gain_and_unpriced_positions() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000, "ZZZ": 1000, "cash_amount": 50}})
    holdings = {row.ticker: row for row in compute_holdings(_scenario_prices(), portfolios, "P")}
    assert set(holdings) == {"AAA", "ZZZ"}
    assert holdings["AAA"].value == pytest.approx(33000.0)
    assert holdings["AAA"].gain == pytest.approx(3000.0)
    assert holdings["AAA"].gain_percent == pytest.approx(10.0)
    assert holdings["ZZZ"].priced is False
    assert holdings["ZZZ"].current_price is None
    assert holdings["ZZZ"].value == 1000.0
    assert holdings["ZZZ"].gain == 0.0


def test_holdings_as_of_uses_close_in_effect() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 30000}})
    (row,) = compute_holdings(_scenario_prices(), portfolios, "P", as_of=date(2025, 1, 20))
    assert row.current_price == 100.0
    assert row.value == pytest.approx(30000.0)


def test_raw_sequence_skips_unusable_first_close() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 1000}})
    days = [date(2025, 1, 2), date(2025, 1, 3), date(2025, 1, 6)]
    raw = [PricePoint(days[0], 0.0), PricePoint(days[1], 100.0), PricePoint(days[2], 110.0)]

    values = compute_portfolio_values({"AAA": raw}, portfolios, days)
    assert [point.value for point in values] == [1000.0, pytest.approx(1000.0), pytest.approx(1100.0)]
    assert compute_share_counts({"AAA": raw}, portfolios)["P"]["AAA"] == pytest.approx(10.0)

    with_nan = [PricePoint(days[0], float("nan")), PricePoint(days[1], 100.0)]
    defaulted = compute_portfolio_values({"AAA": with_nan}, portfolios)
    assert [(point.date, point.value) for point in defaulted] == [(days[1], pytest.approx(1000.0))]


def test_raw_sequence_without_usable_close_counts_invested() -> None:
    portfolios = PortfolioDefinition.from_mapping({"P": {"AAA": 1000, "cash_amount": 10}})
    raw = [PricePoint(date(2025, 1, 2), -3.0)]
    values = compute_portfolio_values({"AAA": raw}, portfolios, [date(2025, 1, 2)])
    assert [point.value for point in values] == [1010.0]
    (row,) = compute_holdings({"AAA": raw}, portfolios, "P")
    assert row.priced is False
    assert row.initial_price is None
