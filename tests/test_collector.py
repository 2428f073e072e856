import pytest

from laporan_kredit.collector import DEFAULT_MAX_LOOKAHEAD, collect


def test_collects_across_wrapped_line(regions):
    lines = [
        "1 Bogor 4.529",
        "6,85 3.705 5,60 8.234 12,45 4.400 6,70 3.600 5,50 8.000 12,20",
        "2 Depok 1.901 3,12",
    ]
    collected = collect(lines, 0, 13, regions)
    assert len(collected.numbers) == 13
    assert collected.lines_consumed == 2
    assert collected.numbers[0] == 1
    assert collected.numbers[-1] == pytest.approx(12.20)


def test_does_not_read_past_target_when_first_line_is_complete(regions):
    lines = [
        "KANWIL JAKARTA I 1 2 3 4 5 6 7 8 9 10 11 12",
        "13 14 15",
    ]
    collected = collect(lines, 0, 12, regions)
    assert collected.lines_consumed == 1
    assert collected.numbers == list(range(1, 13))


def test_stops_at_next_row_start(regions):
    lines = [
        "2 Bumi Serpong Damai 7.700 12,90",
        "3 Bintaro Jaya 3.576 10,82",
    ]
    collected = collect(lines, 0, 13, regions)
    assert collected.lines_consumed == 1
    assert collected.numbers == pytest.approx([2, 7700, 12.90])
    assert not collected.satisfies(13)


def test_stops_at_noise_line(regions):
    lines = [
        "TOTAL NASIONAL 1.234.567 4,39",
        "Halaman 1 dari 2",
        "987.654 2,42",
    ]
    collected = collect(lines, 0, 12, regions)
    assert collected.lines_consumed == 1
    assert collected.numbers == pytest.approx([1234567, 4.39])


def test_lookahead_is_capped(regions):
    lines = ["1 Medan 1"] + ["2,5 3,5"] * 10
    collected = collect(lines, 0, 50, regions, max_lookahead=3)
    assert collected.lines_consumed == 4
    assert len(collected.numbers) == 2 + 3 * 2


def test_default_lookahead_is_finite(regions):
    lines = ["1 Medan 1"] + ["7"] * 20
    collected = collect(lines, 0, 100, regions)
    assert collected.lines_consumed == DEFAULT_MAX_LOOKAHEAD + 1


def test_region_names_do_not_leak_digits(regions):
    lines = ["KANWIL SUMATERA 1 90.000 4,50"]
    collected = collect(lines, 0, 12, regions)
    assert collected.numbers == pytest.approx([90000, 4.50])


def test_rejects_bad_arguments(regions):
    with pytest.raises(IndexError):
        collect(["1 Bogor 2"], 3, 13, regions)
    with pytest.raises(ValueError):
        collect(["1 Bogor 2"], 0, 13, regions, max_lookahead=-1)
