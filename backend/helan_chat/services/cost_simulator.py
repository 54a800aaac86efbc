"""Cost estimation over selected services"""

from decimal import Decimal, InvalidOperation

from helan_chat.models.content import Service
from helan_chat.schemas.scraping import CostLine, CostSimulationResponse, UserProfile

MEMBER_DISCOUNT_RATE = 0.15
DEFAULT_UNIT = "month"


def _price(value: str | None) -> float:
    if not value:
        return 0.0
    try:
        return float(Decimal(value))
    except InvalidOperation:
        return 0.0


def simulate_costs(services: list[Service], profile: UserProfile) -> CostSimulationResponse:
    """Sum the starting prices; members of the supplementary insurance get 15% off

    Membership is assumed unless the profile says otherwise.
    """
    lines = [
        CostLine(
            service_id=s.id,
            name=s.name,
            price=_price(s.price_from),
            unit=s.price_unit or DEFAULT_UNIT,
        )
        for s in services
    ]
    total = round(sum(line.price for line in lines), 2)
    discount = round(total * MEMBER_DISCOUNT_RATE, 2) if profile.is_zf_member is not False else 0.0
    return CostSimulationResponse(
        services=lines,
        total_cost=total,
        discount=discount,
        final_cost=round(total - discount, 2),
    )
