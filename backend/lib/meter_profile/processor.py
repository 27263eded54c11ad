from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from .models import CycleRun, EnergyReading, PowerComponents

# Returned by average_power_factor() for an empty sequence instead of NaN.
EMPTY_POWER_FACTOR = 0.0


def latest_reading(readings: Sequence[EnergyReading]) -> Optional[EnergyReading]:
    return readings[-1] if readings else None


def total_energy(readings: Sequence[EnergyReading]) -> float:
    """Energy_kWh is cumulative, so the last reading holds the total."""
    return readings[-1].energy_kwh if readings else 0.0


def cumulative_cost(readings: Sequence[EnergyReading]) -> float:
    return readings[-1].cost_cum if readings else 0.0


def peak_power(readings: Sequence[EnergyReading]) -> float:
    return max((r.active_power_kw for r in readings), default=0.0)


def average_power_factor(readings: Sequence[EnergyReading]) -> float:
    if not readings:
        return EMPTY_POWER_FACTOR
    return sum(r.power_factor for r in readings) / len(readings)


def average_cost_per_unit(readings: Sequence[EnergyReading]) -> float:
    energy = total_energy(readings)
    return cumulative_cost(readings) / energy if energy > 0 else 0.0


def power_factor_class(avg_pf: float) -> str:
    """
    Classify an average power factor.

    Only Excellent, Good and Poor are produced. The meter export also
    labels rows "Bad", but no threshold for it is known.
    """
    if avg_pf > 0.95:
        return "Excellent"
    if avg_pf > 0.90:
        return "Good"
    return "Poor"


def power_component_breakdown(latest: Optional[EnergyReading]) -> PowerComponents:
    if latest is None:
        return PowerComponents(active=0.0, reactive=0.0, apparent=0.0)
    return PowerComponents(
        active=latest.active_power_kw,
        reactive=latest.reactive_power_kvar,
        apparent=latest.apparent_power_kva,
    )


def duty_cycle(readings: Sequence[EnergyReading]) -> float:
    """Rolling 24h compressor duty cycle (%) as of the latest reading."""
    return readings[-1].duty_cycle_pct_24h if readings else 0.0


def live_snapshot(readings: Sequence[EnergyReading]) -> Dict[str, Optional[float]]:
    latest = latest_reading(readings)
    if latest is None:
        return {"watts": None, "voltage_v": None, "current_a": None}
    return {
        "watts": round(latest.active_power_kw * 1000, 1),
        "voltage_v": latest.voltage_v,
        "current_a": latest.current_a,
    }


def compressor_cycles(readings: Sequence[EnergyReading]) -> List[CycleRun]:
    """
    Group consecutive readings sharing a Cycle_ID into runs.

    A run takes its compressor state from its first reading.
    """
    runs: List[CycleRun] = []
    start = 0
    for i in range(1, len(readings) + 1):
        if i < len(readings) and readings[i].cycle_id == readings[start].cycle_id:
            continue
        first, last = readings[start], readings[i - 1]
        runs.append(CycleRun(
            cycle_id=first.cycle_id,
            compressor_on=first.compressor_on,
            start=first.timestamp,
            end=last.timestamp,
            samples=i - start,
        ))
        start = i
    return runs


def daily_energy(readings: Sequence[EnergyReading]) -> Dict[str, float]:
    """
    Returns a dict keyed by 'YYYY-MM-DD' -> kWh consumed that day.

    Energy_kWh is a running total, so each interval's consumption is the
    difference to the previous reading, booked on the day of the later one.
    The first reading only sets the baseline.
    """
    daily: Dict[str, float] = defaultdict(float)
    for prev, curr in zip(readings, readings[1:]):
        key_date = curr.timestamp.strftime("%Y-%m-%d")
        daily[key_date] += curr.energy_kwh - prev.energy_kwh
    return {day: round(kwh, 6) for day, kwh in daily.items()}


class EnergyAnalyzer:
    def __init__(self, readings: Sequence[EnergyReading]):
        # Loader output is already sorted; keep a tuple so nothing mutates it
        self.readings = tuple(readings)

    def dashboard_summary(self) -> dict:
        avg_pf = average_power_factor(self.readings)
        return {
            "total_energy_kwh": total_energy(self.readings),
            "cumulative_cost": cumulative_cost(self.readings),
            "peak_power_kw": peak_power(self.readings),
            "average_power_factor": round(avg_pf, 4),
            "power_factor_class": power_factor_class(avg_pf),
            "live": live_snapshot(self.readings),
        }

    def analytics_summary(self) -> dict:
        components = power_component_breakdown(latest_reading(self.readings))
        return {
            "duty_cycle_pct_24h": duty_cycle(self.readings),
            "power_components": {
                "active_kw": components.active,
                "reactive_kvar": components.reactive,
                "apparent_kva": components.apparent,
            },
            "compressor_cycles": [
                {
                    "cycle_id": run.cycle_id,
                    "compressor_on": run.compressor_on,
                    "start": run.start.isoformat(),
                    "end": run.end.isoformat(),
                    "samples": run.samples,
                }
                for run in compressor_cycles(self.readings)
            ],
        }

    def cost_summary(self) -> dict:
        return {
            "total_cost": cumulative_cost(self.readings),
            "total_energy_kwh": total_energy(self.readings),
            "average_cost_per_kwh": round(average_cost_per_unit(self.readings), 4),
        }

    def power_series(self) -> List[dict]:
        return [{"time": r.timestamp.isoformat(), "active_power_kw": r.active_power_kw}
                for r in self.readings]

    def cost_series(self) -> List[dict]:
        return [{"time": r.timestamp.isoformat(), "cost_cum": r.cost_cum}
                for r in self.readings]

    def compressor_series(self) -> List[dict]:
        return [{"time": r.timestamp.isoformat(), "compressor_on": int(r.compressor_on)}
                for r in self.readings]

    def current_vs_power(self) -> List[dict]:
        return [{"current_a": r.current_a, "active_power_kw": r.active_power_kw}
                for r in self.readings]
