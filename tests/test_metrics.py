from datetime import date

import pytest

from core.enums import Gender
from stages.s5_metrics import MetricsAggregator, compute_metrics
from stages.s5_metrics.aggregator import is_marked, resolve_gender
from utils.dates import date_to_serial
from tests.helpers import make_payload


KEYS = ["nama", "nik", "umur", "jenis_kelamin", "skrining", "a", "b", "c", "pemberdayaan"]
TODAY = date(2025, 6, 1)


def sample_payload():
    return make_payload(KEYS, [
        {"nama": "Ani", "nik": "1", "umur": 50, "jenis_kelamin": "L", "skrining": "ya"},
        {"nama": "Bu", "nik": "2", "umur": 65, "jenis_kelamin": "P", "skrining": "v", "a": "x", "pemberdayaan": "1"},
        {"nama": "Bu", "nik": "2", "umur": 65, "jenis_kelamin": "P"},
        {"nama": "Ca", "nik": "3", "umur": 72, "jenis_kelamin": "LAKI-LAKI", "c": "ya"},
        {"nama": "Di", "nik": "", "umur": 80, "jenis_kelamin": "L", "skrining": "ya"},
        {"nama": "Ed", "nik": "4", "umur": "tua", "jenis_kelamin": "P", "skrining": "ya"},
    ])


def test_marked_vocabulary():
    for value in ("Yes", "ya", "V", "✓", "x", 1, "TRUE"):
        assert is_marked(value)
    for value in (None, "", "tidak", "0", 2):
        assert not is_marked(value)


def test_gender_resolution():
    assert resolve_gender("Laki-laki") == Gender.MALE
    assert resolve_gender("perempuan") == Gender.FEMALE
    assert resolve_gender("X") is None
    assert resolve_gender(None) is None


def test_age_bands_and_dedup():
    metrics = compute_metrics(sample_payload(), TODAY)

    assert (metrics.pre_senior.L, metrics.pre_senior.P, metrics.pre_senior.T) == (1, 0, 1)
    assert (metrics.senior.L, metrics.senior.P, metrics.senior.T) == (1, 1, 2)
    assert (metrics.high_risk_senior.L, metrics.high_risk_senior.P, metrics.high_risk_senior.T) == (1, 0, 1)
    assert metrics.rows_total == 6
    assert metrics.rows_counted == 4


def test_served_requires_senior_and_a_service():
    metrics = compute_metrics(sample_payload(), TODAY)
    assert (metrics.served.L, metrics.served.P, metrics.served.T) == (0, 1, 1)


def test_screening_by_band():
    metrics = compute_metrics(sample_payload(), TODAY)

    assert metrics.screened_pre_senior.T == 1
    assert (metrics.screened_senior.L, metrics.screened_senior.P, metrics.screened_senior.T) == (0, 1, 1)
    assert metrics.screened_high_risk_senior.T == 0


def test_tiers_use_senior_denominator():
    metrics = compute_metrics(sample_payload(), TODAY)

    assert metrics.tier_a.absolute == 1
    assert metrics.tier_a.percent == 50.0
    assert metrics.tier_c_severe.absolute == 1
    assert metrics.tier_b_mild.absolute == 0
    assert metrics.tier_b_moderate.absolute == 0
    assert metrics.tier_c_total.absolute == 0
    assert metrics.empowered.absolute == 1
    assert metrics.empowered.percent == 50.0


def test_same_person_counted_once():
    payload = make_payload(["nik", "umur", "jenis_kelamin"], [
        {"nik": "3301", "umur": 61, "jenis_kelamin": "L"},
        {"nik": 3301, "umur": 61, "jenis_kelamin": "L"},
    ])
    assert compute_metrics(payload, TODAY).senior.T == 1


def test_age_from_birth_date():
    payload = make_payload(["nik", "jenis_kelamin", "tanggal_lahir"], [
        {"nik": "1", "jenis_kelamin": "P", "tanggal_lahir": date_to_serial(date(1950, 6, 2))},
        {"nik": "2", "jenis_kelamin": "L", "tanggal_lahir": "01/06/1965"},
        {"nik": "3", "jenis_kelamin": "L", "tanggal_lahir": "bukan tanggal"},
    ])
    metrics = compute_metrics(payload, TODAY)

    assert metrics.senior.P == 1
    assert metrics.high_risk_senior.T == 1
    assert metrics.senior.L == 1
    assert metrics.rows_counted == 2


def test_no_seniors_gives_zero_percent():
    payload = make_payload(["nik", "umur", "jenis_kelamin", "a"], [
        {"nik": "1", "umur": 50, "jenis_kelamin": "L", "a": "ya"},
    ])
    metrics = compute_metrics(payload, TODAY)
    assert metrics.tier_a.absolute == 0
    assert metrics.tier_a.percent == 0.0


def test_worksheet_without_roles_yields_zeros():
    payload = make_payload(["keterangan"], [{"keterangan": "x"}])
    metrics = compute_metrics(payload, TODAY)
    assert metrics.senior.T == 0
    assert metrics.rows_counted == 0


@pytest.mark.asyncio
async def test_metrics_stage():
    aggregator = MetricsAggregator(today=TODAY)
    payload = sample_payload()
    assert aggregator.validate_input(payload)
    assert (await aggregator.execute(payload)).senior.T == 2
