from __future__ import annotations

import csv
import json

import pytest

from patrol_verify.cli import main

ROUTE_CSV = (
    "order,checkpoint_id,name,latitude,longitude,radius_m\n"
    "1,gate,Main Gate,0.0,0.0,10\n"
    "2,lot,Parking Lot,0.0,0.001,10\n"
)


@pytest.fixture
def route_csv(tmp_path):
    p = tmp_path / "route.csv"
    p.write_text(ROUTE_CSV, encoding="utf-8")
    return p


def test_inspect_route_json(route_csv, capsys):
    assert main(["inspect-route", "--route", str(route_csv), "--lat", "0", "--lon", "0", "--json"]) == 0
    out = capsys.readouterr().out

    assert "Main Gate" in out
    payload = json.loads(out[out.index("{"):])
    assert [c["checkpoint_id"] for c in payload["checkpoints"]] == ["gate", "lot"]
    assert payload["checkpoints"][0]["distance_m"] == 0.0
    assert payload["length_m"] == pytest.approx(111.195, rel=1e-4)


def test_replay_complete_track(route_csv, tmp_path, capsys):
    track = tmp_path / "Path.csv"
    track.write_text(
        "geoTime,latitude,longitude,horizontalAccuracy\n"
        "1735768800000,0.0,-0.001,5\n"
        "1735768810000,0.0,0.0,5\n"
        "1735768820000,0.0,0.001,5\n",
        encoding="utf-8",
    )
    out_csv = tmp_path / "outcomes.csv"

    code = main(["replay", "--route", str(route_csv), "--track", str(track), "--guard-id", "G-001", "--out", str(out_csv)])

    assert code == 0
    assert "route complete: 2/2" in capsys.readouterr().out
    with out_csv.open(encoding="utf-8", newline="") as f:
        statuses = [r["status"] for r in csv.DictReader(f)]
    assert statuses == ["outside_geofence", "checkpoint_visited", "checkpoint_visited"]


def test_check_in_confirmed_appends_record(route_csv, tmp_path, capsys):
    records = tmp_path / "records.csv"
    argv = [
        "check-in",
        "--route", str(route_csv),
        "--guard-id", "G-001",
        "--method", "manual",
        "--lat", "0.0",
        "--lon", "0.001",
        "--visited", "1",
        "--at", "2025-01-01 22:00:00",
        "--records-out", str(records),
    ]
    assert main(argv) == 0
    assert "check-in state: confirmed" in capsys.readouterr().out

    with records.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["checkpoint_id"] == "lot"
    assert rows[0]["verification_method"] == "manual"
    assert rows[0]["guard_id"] == "G-001"


def test_check_in_identity_failure(route_csv, tmp_path, capsys):
    records = tmp_path / "records.csv"
    argv = [
        "check-in",
        "--route", str(route_csv),
        "--guard-id", "G-001",
        "--identity", "fail",
        "--lat", "0.0",
        "--lon", "0.0",
        "--records-out", str(records),
    ]
    assert main(argv) == 1
    assert "rejected (identity_verification_failed)" in capsys.readouterr().out
    assert not records.exists()


def test_check_in_outside_geofence(route_csv, capsys):
    argv = ["check-in", "--route", str(route_csv), "--guard-id", "G-001", "--lat", "0.0", "--lon", "0.001"]
    assert main(argv) == 1
    out = capsys.readouterr().out
    assert "Move closer to checkpoint 1" in out
    assert "awaiting_location" in out


def test_invalid_route_file(tmp_path, capsys):
    bad = tmp_path / "route.csv"
    bad.write_text("order,latitude,longitude,radius_m\n1,0,0,10\n1,0,0,10\n", encoding="utf-8")
    assert main(["inspect-route", "--route", str(bad)]) == 2
    assert "duplicate checkpoint order" in capsys.readouterr().err
