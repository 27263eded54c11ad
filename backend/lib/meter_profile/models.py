# backend/lib/meter_profile/models.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# Row-level power factor classes as exported by the meter.
# "Bad" never comes out of processor.power_factor_class().
PF_CLASSES = ("Excellent", "Good", "Poor", "Bad")


@dataclass(frozen=True)
class EnergyReading:
    timestamp: datetime
    voltage_v: float
    frequency_hz: float
    current_a: float
    active_power_kw: float
    power_factor: float
    apparent_power_kva: float
    reactive_power_kvar: float
    energy_kwh: float
    cost_cum: float
    pf_class: str
    compressor_on: bool
    duty_cycle_pct_24h: float
    cycle_id: int

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "voltage_v": self.voltage_v,
            "frequency_hz": self.frequency_hz,
            "current_a": self.current_a,
            "active_power_kw": self.active_power_kw,
            "power_factor": self.power_factor,
            "apparent_power_kva": self.apparent_power_kva,
            "reactive_power_kvar": self.reactive_power_kvar,
            "energy_kwh": self.energy_kwh,
            "cost_cum": self.cost_cum,
            "pf_class": self.pf_class,
            "compressor_on": self.compressor_on,
            "duty_cycle_pct_24h": self.duty_cycle_pct_24h,
            "cycle_id": self.cycle_id,
        }


@dataclass(frozen=True)
class PowerComponents:
    active: float
    reactive: float
    apparent: float


@dataclass(frozen=True)
class CycleRun:
    cycle_id: int
    compressor_on: bool
    start: datetime
    end: datetime
    samples: int


@dataclass(frozen=True)
class TariffSlab:
    label: str
    lower_kwh: float
    upper_kwh: Optional[float]
    rate: float
