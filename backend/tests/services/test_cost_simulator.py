"""Cost simulator tests"""

from helan_chat.models import Service
from helan_chat.schemas.scraping import UserProfile
from helan_chat.services.cost_simulator import simulate_costs


def service(id: int, price_from: str | None, price_unit: str | None = None) -> Service:
    return Service(id=id, name=f"Service {id}", category="Thuiszorg", price_from=price_from, price_unit=price_unit)


def test_members_get_discount_by_default():
    result = simulate_costs([service(1, "40"), service(2, "10")], UserProfile())

    assert result.total_cost == 50.0
    assert result.discount == 7.5
    assert result.final_cost == 42.5
    assert result.currency == "EUR"


def test_non_member_pays_full_price():
    result = simulate_costs([service(1, "20")], UserProfile(is_zf_member=False))

    assert result.discount == 0.0
    assert result.final_cost == 20.0


def test_missing_or_invalid_price_counts_as_zero():
    result = simulate_costs([service(1, None), service(2, "op aanvraag", "EUR")], UserProfile(is_zf_member=True))

    assert [line.price for line in result.services] == [0.0, 0.0]
    assert [line.unit for line in result.services] == ["month", "EUR"]
    assert result.total_cost == 0.0
