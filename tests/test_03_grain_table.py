"""
Film grain table container: libaom text layout, reading, merging and lookup
"""
import pytest

from photongrain.film_grain import FilmGrainParams
from photongrain.grain_table import (
    ALL_TIMESTAMPS_END, FilmGrainTable, GrainTableError, GrainTableErrorKind,
    format_grain_table, parse_grain_table, read_grain_table, write_grain_table,
)
from photongrain.noise_model import photon_noise_film_grain

SIMPLE_TABLE = (
    b"filmgrn1\n"
    b"E 0 9223372036854775807 1 7391 1\n"
    b"\tp 0 6 0 8 0 1 0 0 0 0 0 0\n"
    b"\tsY 2  0 20 255 40\n"
    b"\tsCb 0\n"
    b"\tsCr 0\n"
    b"\tcY\n"
    b"\tcCb 0\n"
    b"\tcCr 0\n"
)


def simple_params(**overrides):
    kwargs = {"scaling_points_y": ((0, 20), (255, 40))}
    kwargs.update(overrides)
    return FilmGrainParams(**kwargs)


def test_single_entry_layout():
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, simple_params())
    assert format_grain_table(table) == SIMPLE_TABLE


def test_written_file_matches_layout(tmp_path):
    path = tmp_path / "noise.tbl"
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, simple_params())
    table.write(path)
    assert path.read_bytes() == SIMPLE_TABLE


def test_parse_simple_table():
    table = parse_grain_table(SIMPLE_TABLE)
    assert len(table) == 1
    entry = table.entries[0]
    assert entry.start_time == 0
    assert entry.end_time == ALL_TIMESTAMPS_END
    assert entry.params == simple_params()


def test_photon_noise_round_trip(tmp_path):
    path = tmp_path / "noise.tbl"
    params = photon_noise_film_grain(3840, 2160, 25600, "srgb")
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, params)
    write_grain_table(table, path)

    read_back = read_grain_table(path)
    assert len(read_back) == 1
    assert read_back.entries[0].params == params


def test_auto_regressive_coefficients_round_trip():
    params = FilmGrainParams(
        scaling_points_y=((0, 10), (128, 30), (255, 12)),
        scaling_points_cb=((0, 5), (255, 6)),
        scaling_points_cr=((64, 7),),
        ar_coeff_lag=1,
        ar_coeffs_y=(1, -2, 3, -4),
        ar_coeffs_cb=(5, 6, 7, 8, 9),
        ar_coeffs_cr=(-5, -6, -7, -8, -9),
        cb_mult=128,
        cb_luma_mult=192,
        cb_offset=256,
        random_seed=42,
    )
    table = FilmGrainTable()
    table.append(100, 200, params)
    data = format_grain_table(table)
    assert b"\tcY 1 -2 3 -4\n" in data
    assert parse_grain_table(data).entries[0].params == params


def test_entries_without_update_inherit_parameters():
    data = SIMPLE_TABLE.replace(b"9223372036854775807", b"1000") + b"E 1000 2000 1 99 0\n"
    table = parse_grain_table(data)
    assert len(table) == 2
    second = table.entries[1].params
    assert second.random_seed == 99
    assert second.update_parameters == 0
    assert second.scaling_points_y == ((0, 20), (255, 40))
    # and writing it back only emits the header line
    assert format_grain_table(table).endswith(b"\tcCr 0\nE 1000 2000 1 99 0\n")


def test_append_merges_identical_parameters():
    table = FilmGrainTable()
    table.append(0, 1000, simple_params())
    table.append(1000, 5000, simple_params())
    assert len(table) == 1
    assert table.entries[0].end_time == 5000

    table.append(5000, 6000, simple_params(random_seed=1))
    assert len(table) == 2


def test_lookup():
    table = FilmGrainTable()
    table.append(0, 1000, simple_params())
    table.append(1000, 2000, simple_params(random_seed=1))
    assert table.lookup(0).random_seed == 7391
    assert table.lookup(999).random_seed == 7391
    assert table.lookup(1000).random_seed == 1
    assert table.lookup(2000) is None


def test_unbounded_entry_covers_all_timestamps():
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, simple_params())
    for timestamp in (0, 1, 10_000_000, 2 ** 62):
        assert table.lookup(timestamp) == simple_params()


def test_bad_magic():
    with pytest.raises(GrainTableError) as excinfo:
        parse_grain_table(b"filmgrn2\n" + SIMPLE_TABLE[9:])
    assert excinfo.value.kind is GrainTableErrorKind.FORMAT
    assert "magic" in excinfo.value.detail


def test_truncated_entry():
    truncated = SIMPLE_TABLE[:SIMPLE_TABLE.index(b"\tsCb")]
    with pytest.raises(GrainTableError) as excinfo:
        parse_grain_table(truncated)
    assert excinfo.value.kind is GrainTableErrorKind.FORMAT


def test_non_integer_field():
    with pytest.raises(GrainTableError) as excinfo:
        parse_grain_table(SIMPLE_TABLE.replace(b"7391", b"seed"))
    assert excinfo.value.kind is GrainTableErrorKind.FORMAT


def test_too_many_luma_points():
    points = b"".join(b" %d 10" % i for i in range(15))
    data = SIMPLE_TABLE.replace(b"\tsY 2  0 20 255 40\n", b"\tsY 15 " + points + b"\n")
    with pytest.raises(GrainTableError) as excinfo:
        parse_grain_table(data)
    assert "exceeds max" in excinfo.value.detail


def test_first_entry_must_carry_parameters():
    with pytest.raises(GrainTableError):
        parse_grain_table(b"filmgrn1\nE 0 10 1 7391 0\n")


def test_empty_table(tmp_path):
    path = tmp_path / "empty.tbl"
    FilmGrainTable().write(path)
    assert path.read_bytes() == b"filmgrn1\n"
    assert len(FilmGrainTable.read(path)) == 0


def test_missing_file_is_io_error(tmp_path):
    with pytest.raises(GrainTableError) as excinfo:
        read_grain_table(tmp_path / "missing.tbl")
    assert excinfo.value.kind is GrainTableErrorKind.IO


def test_unwritable_path_is_io_error(tmp_path):
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, simple_params())
    with pytest.raises(GrainTableError) as excinfo:
        table.write(tmp_path / "no_such_dir" / "noise.tbl")
    assert excinfo.value.kind is GrainTableErrorKind.IO
    assert "no_such_dir" in excinfo.value.detail


@pytest.mark.parametrize("overrides", [
    {"ar_coeff_lag": 1},
    {"ar_coeff_lag": 1, "ar_coeffs_y": (1, 2, 3, 4)},
    {"ar_coeffs_y": (1,)},
    {"ar_coeffs_cb": ()},
    {"scaling_points_cr": ((0, 5),), "ar_coeffs_cr": (1, 2)},
], ids=["lag-without-coeffs", "chroma-short", "luma-extra", "cb-empty", "cr-extra"])
def test_coefficient_count_must_match_lag(overrides):
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, simple_params(**overrides))
    with pytest.raises(GrainTableError) as excinfo:
        format_grain_table(table)
    assert excinfo.value.kind is GrainTableErrorKind.FORMAT
    assert "coeffs" in excinfo.value.detail


@pytest.mark.parametrize("field, count", [
    ("scaling_points_y", 15),
    ("scaling_points_cb", 11),
    ("scaling_points_cr", 11),
])
def test_too_many_points_are_rejected_on_write(tmp_path, field, count):
    path = tmp_path / "noise.tbl"
    params = simple_params(**{field: tuple((i, 10) for i in range(count))})
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, params)
    with pytest.raises(GrainTableError) as excinfo:
        table.write(path)
    assert excinfo.value.kind is GrainTableErrorKind.FORMAT
    assert "exceeds max" in excinfo.value.detail
    assert not path.exists()


def test_maximum_point_counts_round_trip():
    params = FilmGrainParams(
        scaling_points_y=tuple((i * 18, i) for i in range(14)),
        scaling_points_cb=tuple((i * 25, i) for i in range(10)),
        scaling_points_cr=tuple((i * 25, 2 * i) for i in range(10)),
    )
    table = FilmGrainTable()
    table.append(0, ALL_TIMESTAMPS_END, params)
    assert parse_grain_table(format_grain_table(table)).entries[0].params == params
