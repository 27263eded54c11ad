# backend/lib/meter_profile/estimator.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from .models import TariffSlab

# Bangladesh residential tariff, 2024 (BDT per kWh)
RESIDENTIAL_SLABS = (
    TariffSlab("0-75 kWh", 0, 75, 5.26),
    TariffSlab("76-200 kWh", 75, 200, 7.20),
    TariffSlab("201-300 kWh", 200, 300, 7.59),
    TariffSlab("301-400 kWh", 300, 400, 8.02),
    TariffSlab("401-600 kWh", 400, 600, 12.67),
    TariffSlab("601+ kWh", 600, None, 14.61),
)


def _round2(value: float) -> float:
    # round to 2 decimal places (banker's rounding avoided; use ROUND_HALF_UP)
    return float(Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


class TariffEstimator:
    def __init__(self, slabs: Sequence[TariffSlab] = RESIDENTIAL_SLABS):
        """
        slabs: ordered, contiguous consumption bands; the last one may be open-ended
        """
        self.slabs = tuple(slabs)

    def rate_for(self, monthly_kwh: float) -> float:
        """Rate of the slab a month's consumption falls into."""
        for slab in self.slabs:
            if slab.upper_kwh is None or monthly_kwh <= slab.upper_kwh:
                return slab.rate
        return self.slabs[-1].rate

    def estimate_cost(self, monthly_kwh: float) -> float:
        """
        Bill for one month, each band charged at its own rate.
        e.g. 100 kWh -> 75 * 5.26 + 25 * 7.20 = 574.50
        """
        if monthly_kwh <= 0:
            return 0.0
        cost = 0.0
        for slab in self.slabs:
            if monthly_kwh <= slab.lower_kwh:
                break
            upper = monthly_kwh if slab.upper_kwh is None else min(monthly_kwh, slab.upper_kwh)
            cost += (upper - slab.lower_kwh) * slab.rate
        return _round2(cost)

    @staticmethod
    def payback_months(hardware_cost: float = 1500.0,
                       monthly_bill: float = 1000.0,
                       savings_pct: float = 10.0) -> Optional[float]:
        """
        Months until the monitoring hardware pays for itself.
        Defaults: 1500 / (10% of 1000) = 15 months. None if nothing is saved.
        """
        monthly_savings = monthly_bill * savings_pct / 100
        if monthly_savings <= 0:
            return None
        return _round2(hardware_cost / monthly_savings)

    def tariff_table(self) -> list:
        return [{"name": s.label, "rate": s.rate} for s in self.slabs]
