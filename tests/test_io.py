# tests/test_io.py
from backend.lib.meter_profile.io import LoadError, load_csv, parse_csv_string
from backend.lib.s3_service import S3Service
from botocore.response import StreamingBody
from botocore.stub import Stubber
from datetime import datetime
import boto3
import io
import pathlib
import pytest

SAMPLE = pathlib.Path(__file__).parent / "sample.csv"
HEADER = ("Time,Voltage_V,Frequency_Hz,Current_A,ActivePower_kW,PowerFactor,ApparentPower_kVA,"
          "ReactivePower_kVAr,Energy_kWh,Cost_cum_BDT,PF_Class,Compressor_ON,DutyCycle_%_24H,Cycle_ID")


def row(time, energy=1.0, cost=5.0, pf=0.97, compressor=1, duty=40.0, pf_class="Excellent", cycle=1):
    return f"{time},230.0,50.0,0.65,0.15,{pf},0.155,0.04,{energy},{cost},{pf_class},{compressor},{duty},{cycle}"


def csv_text(*rows):
    return "\n".join((HEADER,) + rows) + "\n"


def test_parse_sample_csv():
    readings = parse_csv_string(SAMPLE.read_text())
    assert len(readings) == 3
    assert readings[0].timestamp == datetime(2025, 11, 1, 0, 0)
    assert readings[0].energy_kwh == 0.005
    assert readings[0].pf_class == "Excellent"
    assert readings[0].compressor_on is True
    assert readings[2].compressor_on is False
    assert readings[2].pf_class == "Bad"
    assert readings[2].cycle_id == 2


def test_output_is_sorted_by_timestamp():
    text = csv_text(
        row("2025-11-01 00:04:00", energy=3.0, cost=15),
        row("2025-11-01 00:00:00", energy=1.0, cost=5),
        row("2025-11-01 00:02:00", energy=2.0, cost=10),
    )
    stamps = [r.timestamp for r in parse_csv_string(text)]
    assert stamps == sorted(stamps)


def test_equal_timestamps_keep_file_order():
    text = csv_text(
        row("2025-11-01 00:00:00", cycle=7),
        row("2025-11-01 00:00:00", cycle=3),
        row("2025-11-01 00:00:00", cycle=5),
    )
    assert [r.cycle_id for r in parse_csv_string(text)] == [7, 3, 5]


def test_ordered_input_is_reproduced_unchanged():
    text = csv_text(
        row("2025-11-01T00:00:00Z", energy=1.0, cost=5),
        row("2025-11-01T00:02:00Z", energy=2.0, cost=10, compressor=0, cycle=2),
    )
    readings = parse_csv_string(text)
    assert [(r.energy_kwh, r.cost_cum, r.compressor_on, r.cycle_id) for r in readings] == [
        (1.0, 5.0, True, 1),
        (2.0, 10.0, False, 2),
    ]
    assert readings[0].timestamp.tzinfo is not None


def test_header_only_gives_empty_sequence():
    assert parse_csv_string(HEADER + "\n") == []


def test_extra_columns_are_ignored():
    text = HEADER + ",Note\n" + row("2025-11-01 00:00:00") + ",hello\n"
    assert len(parse_csv_string(text)) == 1


@pytest.mark.parametrize("text, message", [
    ("", "no header"),
    ("Time,Voltage_V\n2025-11-01 00:00:00,230\n", "missing columns"),
    (csv_text(row("yesterday")), "Time"),
    (csv_text(row("2025-11-01 00:00:00", pf=1.2)), "PowerFactor"),
    (csv_text(row("2025-11-01 00:00:00", compressor=2)), "Compressor_ON"),
    (csv_text(row("2025-11-01 00:00:00", duty=120)), "DutyCycle"),
    (csv_text(row("2025-11-01 00:00:00", pf_class="Great")), "PF_Class"),
    (csv_text(row("2025-11-01 00:00:00", energy="")), "Energy_kWh"),
    (csv_text(row("2025-11-01 00:00:00", energy="nan")), "Energy_kWh"),
    (csv_text(row("2025-11-01 00:00:00", cost="inf")), "Cost_cum_BDT"),
    (csv_text(row("2025-11-01 00:00:00", pf="nan")), "PowerFactor"),
    (csv_text(row("2025-11-01 00:00:00", duty="-inf")), "DutyCycle"),
])
def test_malformed_csv_raises_load_error(text, message):
    with pytest.raises(LoadError, match=message):
        parse_csv_string(text)


def test_decreasing_cumulative_energy_is_rejected():
    text = csv_text(
        row("2025-11-01 00:00:00", energy=2.0, cost=5),
        row("2025-11-01 00:02:00", energy=1.0, cost=6),
    )
    with pytest.raises(LoadError, match="Energy_kWh"):
        parse_csv_string(text)


def test_mixed_timezones_are_rejected():
    text = csv_text(row("2025-11-01 00:00:00"), row("2025-11-01T00:02:00Z"))
    with pytest.raises(LoadError, match="timezone"):
        parse_csv_string(text)


def test_load_csv_from_file():
    assert len(load_csv(str(SAMPLE))) == 3


def test_load_csv_missing_file(tmp_path):
    with pytest.raises(LoadError, match="Could not read"):
        load_csv(str(tmp_path / "nope.csv"))


def make_s3_service():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    return S3Service(bucket_name="energy-profile-data", s3_client=client)


def test_load_csv_from_s3_uri():
    service = make_s3_service()
    content = SAMPLE.read_bytes()
    with Stubber(service.s3_client) as stubber:
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(content), len(content))},
        )
        readings = load_csv("s3://other-bucket/exports/data.csv", s3_service=service)
    assert len(readings) == 3


def test_load_csv_from_s3_missing_key():
    service = make_s3_service()
    with Stubber(service.s3_client) as stubber:
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        with pytest.raises(LoadError, match="download"):
            load_csv("exports/data.csv", s3_service=service)


def test_invalid_s3_uri():
    with pytest.raises(LoadError, match="Invalid S3 location"):
        load_csv("s3://bucket-only")


def test_nan_energy_after_valid_row_is_rejected():
    text = csv_text(
        row("2025-11-01 00:00:00", energy=5.0, cost=5),
        row("2025-11-01 00:02:00", energy="nan", cost=6),
    )
    with pytest.raises(LoadError, match="finite"):
        parse_csv_string(text)


def test_oversized_field_raises_load_error():
    text = csv_text(row("2025-11-01 00:00:00")).replace(",230.0,", "," + "2" * 200000 + ",", 1)
    with pytest.raises(LoadError, match="Line"):
        parse_csv_string(text)
