# backend/run_local.py
from backend.lib.meter_profile.io import LoadError, load_csv
from backend.lib.meter_profile.processor import EnergyAnalyzer, compressor_cycles
import sys


def main(csv_path):
    try:
        readings = load_csv(csv_path)
    except LoadError as e:
        print(f"Could not load {csv_path}: {e}", file=sys.stderr)
        return 1

    analyzer = EnergyAnalyzer(readings)
    summary = analyzer.dashboard_summary()
    cost = analyzer.cost_summary()
    print(f"Parsed {len(readings)} readings")
    if readings:
        print(f" - from {readings[0].timestamp.isoformat()} to {readings[-1].timestamp.isoformat()}")
    print(f" - total energy: {summary['total_energy_kwh']:.3f} kWh")
    print(f" - cumulative cost: {summary['cumulative_cost']:.2f} BDT")
    print(f" - avg cost per kWh: {cost['average_cost_per_kwh']:.2f} BDT")
    print(f" - peak power: {summary['peak_power_kw']:.3f} kW")
    print(f" - avg power factor: {summary['average_power_factor']:.2f} ({summary['power_factor_class']})")
    print(f" - compressor cycles: {len(compressor_cycles(readings))}")
    return 0


if __name__ == "__main__":
    csv = sys.argv[1] if len(sys.argv) > 1 else "tests/sample.csv"
    sys.exit(main(csv))
