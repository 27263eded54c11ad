"""
=============================================================================
ENERGY PROFILE - MAIN FLASK APPLICATION
=============================================================================

JSON backend for the refrigerator energy-profiling dashboard. The smart
plug's CSV export is loaded once at startup; every endpoint then serves
metrics computed from that in-memory sequence:

- /dashboard : totals, peak power, power factor, live values
- /analytics : duty cycle, power components, compressor cycles
- /cost      : cost totals, tariff table, payback estimate
- /readings  : raw rows
- /usage     : energy per day
- /status    : whether the data loaded

If the CSV cannot be loaded, data endpoints answer 503 with the error
instead of an empty dashboard.

How to run:
    python -m backend.app

Then visit: http://127.0.0.1:5000/status
=============================================================================
"""

import functools
import logging
import os
from pathlib import Path

from flask import Flask, request, jsonify

# dotenv - Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()

from backend.lib.meter_profile.io import LoadError, load_csv
from backend.lib.meter_profile.processor import EnergyAnalyzer, daily_energy
from backend.lib.meter_profile.estimator import TariffEstimator

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

# Bundled sample export, independent of the working directory
DEFAULT_DATA_CSV = str(Path(__file__).resolve().parent.parent / 'data' / 'data.csv')

# Local path or s3://bucket/key
DATA_CSV_PATH = os.getenv('DATA_CSV_PATH', DEFAULT_DATA_CSV)

# When enabled, a DATA_CSV_PATH without the s3:// prefix is a key in S3_BUCKET_NAME
USE_S3 = os.getenv('USE_S3_STORAGE', 'false').lower() == 'true'

CURRENCY = "BDT"

# =============================================================================
# LOADED DATA
# =============================================================================
# Written only by load_dashboard_data(); request handlers just read it.

readings = ()
load_error = None
data_source = None


def load_dashboard_data(location: str = None, s3_service=None) -> bool:
    """
    Load the CSV once and keep it for the life of the process.

    On failure the sequence stays empty and the error message is kept so
    the data endpoints can report it.

    Returns:
        bool: True if the data loaded
    """
    global readings, load_error, data_source

    location = location or DATA_CSV_PATH
    if s3_service is None and USE_S3 and not location.startswith("s3://"):
        from backend.lib.s3_service import S3Service
        s3_service = S3Service()

    data_source = location
    try:
        readings = tuple(load_csv(location, s3_service=s3_service))
        load_error = None
        return True
    except LoadError as e:
        logger.error("Could not load energy data: %s", e)
        readings = ()
        load_error = str(e)
        return False


def requires_data(view):
    """Answer 503 while the CSV failed to load."""
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        if load_error is not None:
            return jsonify({"error": f"Energy data unavailable: {load_error}"}), 503
        return view(*args, **kwargs)
    return wrapper


app = Flask(__name__)

load_dashboard_data()

# =============================================================================
# API ROUTES
# =============================================================================

@app.route("/status", methods=["GET"])
def status():
    """
    Report whether the energy data loaded.

    Example Response:
        {"loaded": true, "readings": 1440, "source": "data/data.csv", "error": null}
    """
    return jsonify({
        "loaded": load_error is None,
        "readings": len(readings),
        "source": data_source,
        "error": load_error
    })


@app.route("/dashboard", methods=["GET"])
@requires_data
def dashboard():
    """
    Headline metrics plus the power and cost charts.

    Example Response:
        {
            "total_energy_kwh": 2.0,
            "cumulative_cost": 10.0,
            "peak_power_kw": 0.16,
            "average_power_factor": 0.97,
            "power_factor_class": "Excellent",
            "live": {"watts": 150.0, "voltage_v": 229.8, "current_a": 0.68},
            "currency": "BDT",
            "power_series": [...],
            "cost_series": [...]
        }
    """
    analyzer = EnergyAnalyzer(readings)
    payload = analyzer.dashboard_summary()
    payload["currency"] = CURRENCY
    payload["power_series"] = analyzer.power_series()
    payload["cost_series"] = analyzer.cost_series()
    return jsonify(payload)


@app.route("/analytics", methods=["GET"])
@requires_data
def analytics():
    """Duty cycle gauge, power distribution, compressor and current/power charts."""
    analyzer = EnergyAnalyzer(readings)
    payload = analyzer.analytics_summary()
    payload["compressor_series"] = analyzer.compressor_series()
    payload["current_vs_power"] = analyzer.current_vs_power()
    return jsonify(payload)


@app.route("/cost", methods=["GET"])
@requires_data
def cost():
    """
    Cost totals, the slab tariff table and the hardware payback estimate.

    Query Parameters:
        hardware_cost (optional): cost of the monitoring kit (default: 1500)
        monthly_bill (optional): typical monthly bill (default: 1000)
        savings_pct (optional): expected saving in percent (default: 10)
    """
    try:
        hardware_cost = float(request.args.get("hardware_cost", 1500.0))
        monthly_bill = float(request.args.get("monthly_bill", 1000.0))
        savings_pct = float(request.args.get("savings_pct", 10.0))
    except ValueError:
        return jsonify({"error": "hardware_cost, monthly_bill and savings_pct must be numbers"}), 400

    estimator = TariffEstimator()
    payload = EnergyAnalyzer(readings).cost_summary()
    payload["currency"] = CURRENCY
    payload["tariff"] = estimator.tariff_table()
    payload["roi"] = {
        "hardware_cost": hardware_cost,
        "monthly_bill": monthly_bill,
        "savings_pct": savings_pct,
        "payback_months": estimator.payback_months(hardware_cost, monthly_bill, savings_pct)
    }
    return jsonify(payload)


@app.route("/readings", methods=["GET"])
@requires_data
def get_readings():
    """
    Raw readings in timestamp order.

    Query Parameters:
        limit (optional): only return the most recent N readings

    Example Request:
        GET /readings?limit=10
    """
    rows = readings
    limit = request.args.get("limit")
    if limit is not None:
        try:
            limit = int(limit)
        except ValueError:
            return jsonify({"error": "limit must be an integer"}), 400
        if limit < 0:
            return jsonify({"error": "limit must be >= 0"}), 400
        rows = rows[-limit:] if limit else ()

    return jsonify({
        "count": len(rows),
        "readings": [r.to_dict() for r in rows]
    })


@app.route("/usage", methods=["GET"])
@requires_data
def usage():
    """
    Energy consumed per day, from the cumulative Energy_kWh column.

    Example Response:
        {"data": [{"period": "2025-11-01", "total_kwh": 0.94}]}
    """
    data = daily_energy(readings)
    return jsonify({
        "data": [{"period": k, "total_kwh": v} for k, v in sorted(data.items())]
    })


if __name__ == "__main__":
    app.run(debug=os.getenv('FLASK_DEBUG', 'false').lower() == 'true')
