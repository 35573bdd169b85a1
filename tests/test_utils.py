from datetime import date, timedelta

import pytest

from utils.keys import header_key, unique_header_keys, is_blank, cell_text
from utils.dates import (
    parse_dmy, format_dmy, date_to_serial, serial_to_date, coerce_date, is_valid_serial,
    whole_years_between, MAX_SERIAL
)
from utils.columns import classify_columns
from core.enums import ColumnRole


def test_header_key_strips_accents_and_punctuation():
    assert header_key("Jenis Kelamin", 0) == "jenis_kelamin"
    assert header_key("  Tgl. Lahir ", 0) == "tgl_lahir"
    assert header_key("Pérémpuan", 0) == "perempuan"
    assert header_key("Laki--Laki", 0) == "laki_laki"


def test_header_key_falls_back_to_position():
    assert header_key(None, 4) == "column_5"
    assert header_key("???", 0) == "column_1"


def test_unique_header_keys_suffixes_repeats():
    keys = unique_header_keys(["Nama", "NIK", "Nama", "nama", "Ket"])
    assert keys == ["nama", "nik", "nama_2", "nama_3", "ket"]
    assert len(set(keys)) == len(keys)


def test_unique_header_keys_avoids_literal_suffix_collision():
    keys = unique_header_keys(["Nama_2", "Nama", "Nama"])
    assert len(set(keys)) == 3
    assert keys[0] == "nama_2"


def test_unique_header_keys_respects_reserved():
    assert unique_header_keys(["ID", "Nama"], reserved=["id"]) == ["id_2", "nama"]


def test_blank_and_text():
    assert is_blank(None)
    assert is_blank("   ")
    assert not is_blank(0)
    assert cell_text(65.0) == "65"
    assert cell_text(" L ") == "L"


@pytest.mark.parametrize("day", [date(2024, 1, 1), date(1960, 6, 1), date(2025, 12, 31)])
def test_date_round_trip(day):
    assert serial_to_date(date_to_serial(day)) == day
    assert parse_dmy(format_dmy(day)) == day


def test_date_round_trip_across_1900_leap_day():
    day = date(1900, 1, 1)
    while day <= date(1900, 3, 31):
        serial = date_to_serial(day)
        assert is_valid_serial(serial)
        assert serial_to_date(serial) == day
        day += timedelta(days=1)

    assert date_to_serial(date(1900, 2, 28)) == 59
    assert date_to_serial(date(1900, 3, 1)) == 61


def test_dates_before_1900_have_no_serial():
    assert date_to_serial(date(1899, 12, 31)) < 1
    assert date_to_serial(date(1899, 6, 15)) < 0
    assert parse_dmy("15/06/1899") == date(1899, 6, 15)


def test_known_serial():
    assert date_to_serial(date(2024, 1, 1)) == 45292


def test_parse_dmy_rejects_impossible_dates():
    assert parse_dmy("31/02/2020") is None
    assert parse_dmy("1/2/2020") is None
    assert parse_dmy("2020-02-01") is None


def test_serial_bounds():
    assert is_valid_serial(0)
    assert is_valid_serial(MAX_SERIAL)
    assert not is_valid_serial(MAX_SERIAL + 1)
    assert not is_valid_serial(-1)
    assert not is_valid_serial(1.5)
    assert not is_valid_serial(True)
    assert serial_to_date(0) is None


def test_coerce_date_accepts_stored_forms():
    serial = date_to_serial(date(1950, 6, 1))
    assert coerce_date(serial) == date(1950, 6, 1)
    assert coerce_date(str(serial)) == date(1950, 6, 1)
    assert coerce_date("01/06/1950") == date(1950, 6, 1)
    assert coerce_date("1950-06-01") == date(1950, 6, 1)
    assert coerce_date("bukan tanggal") is None
    assert coerce_date(None) is None


def test_whole_years_between():
    assert whole_years_between(date(1960, 6, 2), date(2025, 6, 1)) == 64
    assert whole_years_between(date(1960, 6, 1), date(2025, 6, 1)) == 65
    assert whole_years_between(date(2030, 1, 1), date(2025, 1, 1)) == 0


def test_classify_columns_roles():
    keys = [
        "no", "nama", "nik", "umur", "jenis_kelamin", "tanggal_lahir", "tgl_kunjungan",
        "alamat", "rt", "rw", "skrining", "pengobatan", "a", "b", "c", "pemberdayaan",
    ]
    roles = classify_columns(keys)

    assert roles.names == ("nama",)
    assert roles.identifier == "nik"
    assert roles.age == "umur"
    assert roles.gender == "jenis_kelamin"
    assert roles.dates == ("tanggal_lahir", "tgl_kunjungan")
    assert roles.birth_date == "tanggal_lahir"
    assert roles.services[ColumnRole.SCREENING] == "skrining"
    assert roles.services[ColumnRole.TREATMENT] == "pengobatan"
    assert roles.tiers[ColumnRole.TIER_B] == "b"
    assert roles.role_of("no") == ColumnRole.OTHER
    assert roles.address_detail_keys() == ["rt", "rw"]


def test_classify_columns_uses_labels():
    roles = classify_columns(["column_3", "jk"], ["NIK", "L/P"])
    assert roles.identifier == "column_3"
    assert roles.gender == "jk"
