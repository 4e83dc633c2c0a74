"""
Tests for the CSV file-drop reader: filename lookup order and the
two-column (date, value) parser.
"""
from funnel_sync.connectors.csv_drop import CsvDropReader, detect_delimiter, sum_for_date

PREFIX = "daily-bookings-non-ib"


# ────────────────────────────────────────────
# PARSER
# ────────────────────────────────────────────


class TestSumForDate:

    def test_sums_every_matching_row(self):
        text = "date,n\n2025-09-20,5\n2025-09-20,7\n"
        assert sum_for_date(text, "2025-09-20") == 12

    def test_other_dates_ignored(self):
        text = "date,n\n2025-09-19,100\n2025-09-20,5\n2025-09-21,100\n"
        assert sum_for_date(text, "2025-09-20") == 5

    def test_headerless_semicolon_file(self):
        text = "2025-09-20;3\n2025-09-21;4\n"
        assert sum_for_date(text, "2025-09-20") == 3

    def test_bom_tabs_and_thousands_separators(self):
        text = "\ufeffdate\tcount\n2025-09-20\t1,200\n\n2025-09-20\t5\n"
        assert sum_for_date(text, "2025-09-20") == 1205

    def test_quoted_fields(self):
        text = '"date","n"\n"2025-09-20","5"\n"2025-09-20","1,200"\n'
        assert sum_for_date(text, "2025-09-20") == 1205

    def test_quoted_semicolon_file(self):
        text = '"2025-09-20";"7"\r\n\r\n"2025-09-21";"1"\r\n'
        assert sum_for_date(text, "2025-09-20") == 7

    def test_non_numeric_values_skipped(self):
        text = "date,n\n2025-09-20,abc\n2025-09-20,\n2025-09-20,2\n"
        assert sum_for_date(text, "2025-09-20") == 2

    def test_permissive_date_column(self):
        text = "day,bookings\n2025/09/20,4\n2025-09-20T08:00:00Z,1\n"
        assert sum_for_date(text, "2025-09-20") == 5

    def test_fractional_total_kept(self):
        assert sum_for_date("2025-09-20,1.5\n", "2025-09-20") == 1.5

    def test_empty_text(self):
        assert sum_for_date("", "2025-09-20") == 0
        assert sum_for_date("\n\n", "2025-09-20") == 0


def test_detect_delimiter():
    assert detect_delimiter("a\tb") == "\t"
    assert detect_delimiter("a;b") == ";"
    assert detect_delimiter("a,b") == ","


# ────────────────────────────────────────────
# FILE LOOKUP
# ────────────────────────────────────────────


class TestCsvDropReader:

    def test_candidate_order(self, csv_dir):
        reader = CsvDropReader(csv_dir)
        assert reader.candidate_names(PREFIX, "2025-09-20") == [
            f"{PREFIX}-2025-09-21.csv",
            f"{PREFIX}-2025-09-20.csv",
            f"{PREFIX}-2025-09-22.csv",
        ]

    def test_next_day_file_preferred(self, csv_dir):
        (csv_dir / f"{PREFIX}-2025-09-20.csv").write_text("2025-09-20,1\n")
        (csv_dir / f"{PREFIX}-2025-09-21.csv").write_text("2025-09-20,9\n")
        assert CsvDropReader(csv_dir).read_total(PREFIX, "2025-09-20") == 9

    def test_same_day_then_late_file(self, csv_dir):
        reader = CsvDropReader(csv_dir)
        (csv_dir / f"{PREFIX}-2025-09-22.csv").write_text("2025-09-20,4\n")
        assert reader.read_total(PREFIX, "2025-09-20") == 4

        (csv_dir / f"{PREFIX}-2025-09-20.csv").write_text("2025-09-20,6\n")
        assert reader.read_total(PREFIX, "2025-09-20") == 6

    def test_redownloaded_file_found_by_scan(self, csv_dir):
        (csv_dir / f"{PREFIX}-2025-09-21 (1).csv").write_text("date,n\n2025-09-20,3\n")
        reader = CsvDropReader(csv_dir)
        assert reader.find_file(PREFIX, "2025-09-20").name == f"{PREFIX}-2025-09-21 (1).csv"
        assert reader.read_total(PREFIX, "2025-09-20") == 3

    def test_other_prefix_not_matched(self, csv_dir):
        (csv_dir / "ib-daily-bookings-2025-09-21.csv").write_text("2025-09-20,8\n")
        assert CsvDropReader(csv_dir).read_total(PREFIX, "2025-09-20") == 0

    def test_missing_file_is_zero(self, csv_dir):
        assert CsvDropReader(csv_dir).read_total(PREFIX, "2025-09-20") == 0

    def test_missing_directory_is_zero(self, tmp_path):
        assert CsvDropReader(tmp_path / "nope").read_total(PREFIX, "2025-09-20") == 0
