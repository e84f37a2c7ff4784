from decimal import Decimal
from types import SimpleNamespace

from yatra.core.costs import day_cost, summarize_trip_costs


def stored_day(day_number, activities=(), attractions=(), food=()):
    return SimpleNamespace(
        day_number=day_number,
        activities=list(activities),
        attractions=list(attractions),
        food_recommendations=list(food),
    )


class TestDayCost:

    def test_activities_scale_with_party(self):
        cost = day_cost(1, [{"cost_estimate": 500}, {"cost_estimate": 300}], [], [], party_size=4)
        assert cost.activities_per_person == 800
        assert cost.activities_group == 3200

    def test_attraction_fees_scale_with_party(self):
        cost = day_cost(1, [], [{"entrance_fee": 50}, {"entrance_fee": None}], [], party_size=3)
        assert cost.attractions_per_person == 50
        assert cost.attractions_group == 150

    def test_food_prefers_group_total(self):
        food = [
            {"cost_per_person": 300, "total_cost_for_group": 1000},
            {"total_cost_for_group": 1000},
            {"cost_per_person": 200},
        ]
        cost = day_cost(1, [], [], food, party_size=4)
        assert cost.food_group == 1000 + 1000 + 800
        assert cost.food_per_person == 300 + 250 + 200

    def test_non_numeric_values_count_as_zero(self):
        cost = day_cost(
            1,
            [{"cost_estimate": "500"}, {"cost_estimate": True}, "oops"],
            [{"entrance_fee": "Free"}],
            [{"cost_per_person": "cheap"}],
            party_size=2,
        )
        assert cost.total_group == 0
        assert cost.total_per_person == 0


class TestSummarizeTripCosts:

    def test_rollup_over_days(self):
        days = [
            stored_day(1, activities=[{"cost_estimate": 500}, {"cost_estimate": 300}]),
            stored_day(2, food=[{"cost_per_person": 400, "total_cost_for_group": 1600}]),
        ]
        summary = summarize_trip_costs(days, party_size=4, budget=Decimal("24000"))

        assert [d.total_group for d in summary.days] == [3200, 1600]
        assert summary.total_for_group == 4800
        assert summary.per_person == 1200
        assert summary.budget_used_percent == 20

    def test_no_budget_means_zero_percent(self):
        summary = summarize_trip_costs([stored_day(1, activities=[{"cost_estimate": 100}])], 2, None)
        assert summary.total_for_group == 200
        assert summary.budget_used_percent == 0

    def test_missing_party_size_treated_as_one(self):
        summary = summarize_trip_costs([stored_day(1, activities=[{"cost_estimate": 100}])], None)
        assert summary.party_size == 1
        assert summary.per_person == 100
