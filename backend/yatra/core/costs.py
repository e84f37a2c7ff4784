"""
Trip cost rollup over stored day records.

Activities and attractions carry per-person prices that are multiplied by the
party size. Food entries prefer an explicit group total and fall back to the
per-person cost times the party size. Anything that is not a number counts as 0.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Optional


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass
class DayCost:
    day_number: int
    activities_per_person: float = 0.0
    activities_group: float = 0.0
    attractions_per_person: float = 0.0
    attractions_group: float = 0.0
    food_per_person: float = 0.0
    food_group: float = 0.0

    @property
    def total_per_person(self) -> float:
        return self.activities_per_person + self.attractions_per_person + self.food_per_person

    @property
    def total_group(self) -> float:
        return self.activities_group + self.attractions_group + self.food_group


@dataclass
class CostSummary:
    party_size: int
    total_for_group: float = 0.0
    per_person: int = 0
    budget_used_percent: int = 0
    days: List[DayCost] = field(default_factory=list)


def day_cost(day_number: int, activities: Iterable, attractions: Iterable, food: Iterable,
             party_size: int) -> DayCost:
    """Roll up one day's activities, attractions and food for the party"""
    cost = DayCost(day_number=day_number)

    for activity in activities or []:
        price = _number(activity.get("cost_estimate")) if isinstance(activity, dict) else None
        if price:
            cost.activities_per_person += price
            cost.activities_group += price * party_size

    for attraction in attractions or []:
        fee = _number(attraction.get("entrance_fee")) if isinstance(attraction, dict) else None
        if fee:
            cost.attractions_per_person += fee
            cost.attractions_group += fee * party_size

    for item in food or []:
        if not isinstance(item, dict):
            continue
        group_total = _number(item.get("total_cost_for_group"))
        per_person = _number(item.get("cost_per_person"))
        if item.get("total_cost_for_group"):
            cost.food_group += group_total if group_total is not None else (per_person or 0.0) * party_size
        elif per_person:
            cost.food_group += per_person * party_size

        if per_person:
            cost.food_per_person += per_person
        elif group_total:
            cost.food_per_person += group_total / party_size

    return cost


def summarize_trip_costs(days: Iterable, party_size: Optional[int],
                         budget: Optional[Decimal] = None) -> CostSummary:
    """Build the trip cost summary from DailyItinerary rows (or any object with the same attributes)"""
    party = party_size or 1
    summary = CostSummary(party_size=party)

    for day in days:
        summary.days.append(day_cost(
            day.day_number,
            day.activities,
            day.attractions,
            day.food_recommendations,
            party,
        ))

    summary.total_for_group = sum(d.total_group for d in summary.days)
    summary.per_person = round(summary.total_for_group / party)
    if budget:
        summary.budget_used_percent = round(summary.total_for_group / float(budget) * 100)
    return summary
