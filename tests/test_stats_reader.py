from bot.stats_reader import load_stats
from data.models import Granularity
from data.operations import increment_stat


async def _seed_monthly():
    for period, item, quantity, total in [
        ("2024-01", "와퍼", 2, 14200),
        ("2024-03", "와퍼", 1, 7100),
        ("2024-03", "콜라", 3, 4500),
        ("2024-02", "콜라", 1, 1500),
    ]:
        await increment_stat("버거킹", Granularity.MONTHLY, period, item, quantity, total)


async def test_series_is_ascending_and_latest_period_is_selected():
    await _seed_monthly()

    view = await load_stats("버거킹", Granularity.MONTHLY)

    assert [point.period for point in view.series] == ["2024-01", "2024-02", "2024-03"]
    assert [point.total for point in view.series] == [14200, 1500, 11600]
    assert view.selected_period == "2024-03"
    assert view.menus["2024-03"]["콜라"].quantity == 3


async def test_total_covers_the_selected_period_only():
    await _seed_monthly()

    view = await load_stats("버거킹", Granularity.MONTHLY, selected_period="2024-01")

    assert view.selected_period == "2024-01"
    assert view.selected_total == 14200


async def test_other_shops_and_granularities_are_not_mixed_in():
    await _seed_monthly()
    await increment_stat("스타벅스", Granularity.MONTHLY, "2024-04", "아메리카노", 1, 4500)
    await increment_stat("버거킹", Granularity.DAILY, "2024-03-15", "와퍼", 1, 7100)

    view = await load_stats("버거킹", Granularity.MONTHLY)

    assert "2024-04" not in view.menus
    assert "2024-03-15" not in view.menus


async def test_no_accumulators_means_no_selection():
    view = await load_stats("김밥천국", Granularity.DAILY)

    assert view.series == []
    assert view.selected_period is None
    assert view.selected_total == 0


async def test_selected_period_without_data_totals_zero():
    await _seed_monthly()

    view = await load_stats("버거킹", Granularity.MONTHLY, selected_period="2023-12")

    assert view.selected_total == 0
