from datetime import date

import pytest

from laporan_kredit.builder import build_npl_table_from_rows
from laporan_kredit.models import LineRole
from laporan_kredit.sheet import (
    DAILY_LAYOUT,
    SheetLayout,
    cell_number,
    cell_text,
    classify_daily_row,
    classify_row,
    trailing_block,
    value_block,
)

LEDGER = [10, 1, 20, 2, 30, 3, 9, 1, 19, 2, 28, 3]


def test_cell_helpers():
    assert cell_text(None) == ""
    assert cell_text(float("nan")) == ""
    assert cell_text(3.0) == "3"
    assert cell_text("  Kelapa   Gading ") == "Kelapa Gading"

    assert cell_number(12) == 12.0
    assert cell_number(True) is None
    assert cell_number(float("inf")) is None
    assert cell_number("1.234,5") == pytest.approx(1234.5)
    assert cell_number("") is None
    assert cell_number("n/a") is None


def test_value_block_keeps_column_positions():
    cells = [1, "Bogor", "4.529", "-", 6.85]
    assert value_block(cells, 3) == pytest.approx([4529, 0, 6.85])
    assert value_block(cells, 4) is None
    assert value_block([1, "Bogor", "4.529", None, 6.85], 3) is None
    assert value_block([1, "Bogor", "4.529", "x", 6.85], 3) is None


def test_trailing_block_ignores_empty_trailing_columns():
    cells = [4, 1, None, 1, 9, 8, 7, 6, 5, 4, 3, None, ""]
    assert trailing_block(cells, 7, DAILY_LAYOUT) == [9, 8, 7, 6, 5, 4, 3]
    assert trailing_block(cells, 9, DAILY_LAYOUT) is None
    assert trailing_block([4, 1, 2], 7, DAILY_LAYOUT) is None


def test_layout_validation():
    with pytest.raises(ValueError):
        SheetLayout(index_col=-1)
    with pytest.raises(ValueError):
        SheetLayout(index_col=0, name_col=2, first_value_col=2)


def test_classify_row_roles(regions):
    assert classify_row(["NO", "NAMA CABANG"], regions).role is LineRole.NOISE
    assert classify_row(["", "TOTAL NASIONAL", 1], regions).role is LineRole.NATIONAL_TOTAL

    region = classify_row(["", "Kanwil Jakarta II", 1], regions)
    assert region.role is LineRole.REGION_TOTAL
    assert region.region == "Jakarta II"

    leaf = classify_row([3, "Bintaro Jaya Jakarta I", 1], regions, current_region="Jakarta I")
    assert leaf.role is LineRole.LEAF_CANDIDATE
    assert leaf.index == 3
    assert leaf.name == "Bintaro Jaya"
    assert leaf.region == "Jakarta I"

    assert classify_row([51, "Bogor", 1], regions).role is LineRole.NOISE
    assert classify_row([1, "1.234", 1], regions).role is LineRole.NOISE


def test_classify_daily_row():
    assert classify_daily_row([date(2025, 1, 9), 1]).day == 9
    assert classify_daily_row(["05.", 1]).day == 5
    assert classify_daily_row(["Jumlah", 1]).role is LineRole.TOTAL_ROW
    assert classify_daily_row(["TGL", "KUR"]).role is LineRole.NOISE
    assert classify_daily_row([40, 1]).role is LineRole.NOISE


def test_builds_npl_table_from_rows(regions):
    rows = [
        ["NO", "NAMA CABANG", "KUMK"],
        ["", "TOTAL NASIONAL", *LEDGER],
        ["", "KANWIL JABANUS", *LEDGER],
        [1.0, "Denpasar", *LEDGER],
        ["2.", "Mataram", *LEDGER[:6]],
        [3, "Kupang", *LEDGER],
    ]
    table = build_npl_table_from_rows(rows, regions)
    assert table.region_names() == ["Jabanus"]
    assert [(b.region, b.name) for b in table.branches] == [
        ("Jabanus", "Denpasar"),
        ("Jabanus", "Kupang"),
    ]
    assert table.branches[0].ledger.current.total == 30
    assert table.branches[0].ledger.prior.total == 28
    assert table.national_total.current.kumk == 10


def test_blank_cell_skips_sheet_row_instead_of_shifting(regions):
    rows = [
        ["", "KANWIL JABANUS", *LEDGER],
        [1, "Bogor", 10, 1, 20, 2, 30, 3, None, 0, 0, 0, 0, 0],
        [2, "Denpasar", *LEDGER, None, "catatan"],
        ["", "KANWIL KALIMANTAN", None, *LEDGER[1:]],
        [1, "Kalimantan Timur", *LEDGER],
    ]
    table = build_npl_table_from_rows(rows, regions)
    assert [(b.region, b.name) for b in table.branches] == [
        ("Jabanus", "Denpasar"),
        ("Kalimantan", "Kalimantan Timur"),
    ]
    denpasar = table.branches[0].ledger
    assert denpasar.current.total == 30
    assert denpasar.prior.total == 28
    # The incomplete kanwil row still opens its region; its record is derived
    assert table.region_names() == ["Jabanus", "Kalimantan"]
    assert table.regions[1].ledger.current.total == 30
