"""
Record parser tests: permissive numeric parsing, list cells, breakdown JSON
and the CSV row → MetricsRecord mapping.
"""
import json

import pytest

from ga4report.analyzer.record_parser import (
    MalformedRowError,
    parse_breakdown,
    parse_float,
    parse_int,
    parse_list_cell,
    parse_row,
)
from ga4report.analyzer.validation import BOUNCE_ABOVE_100, validate_consistency
from ga4report.models.report_models import Metrics


def csv_row(**overrides):
    row = {
        "URL": "/radar/foo/",
        "Fecha consulta": "2025-05-31",
        "Vistas página": "120",
        "Sesiones": "80",
        "Usuarios activos": "70",
        "Usuarios nuevos": "40",
        "Sesiones comprometidas": "50",
        "Tasa compromiso (%)": "62.50",
        "Duración prom. (s)": "45.25",
        "Tasa rebote (%)": "37.50",
        "Datos encontrados": "true",
        "Desglose por fuente": json.dumps({"google": {"views": 100, "sessions": 60}}),
        "Advertencias": "",
        "Insights": "",
    }
    row.update(overrides)
    return row


# ────────────────────────────────────────────
# NUMERIC CELLS
# ────────────────────────────────────────────


class TestNumericCells:
    def test_int_takes_leading_integer(self):
        assert parse_int("12.7") == 12
        assert parse_int("  42abc") == 42

    def test_int_unparsable_is_zero(self):
        assert parse_int("") == 0
        assert parse_int(None) == 0
        assert parse_int("n/a") == 0

    def test_int_never_negative(self):
        assert parse_int("-5") == 0

    def test_float_takes_leading_float(self):
        assert parse_float("45.25") == 45.25
        assert parse_float("3.5%") == 3.5
        assert parse_float("abc") == 0.0


class TestListCells:
    def test_empty_is_empty_list(self):
        assert parse_list_cell("") == []
        assert parse_list_cell(None) == []

    def test_splits_on_separator(self):
        assert parse_list_cell("first; second") == ["first", "second"]


class TestBreakdown:
    def test_invalid_json_yields_empty_mapping(self):
        assert parse_breakdown("{not json", "/foo/") == {}

    def test_non_object_yields_empty_mapping(self):
        assert parse_breakdown("[1, 2]", "/foo/") == {}

    def test_object_is_kept(self):
        assert parse_breakdown('{"google": {"views": 3}}') == {"google": {"views": 3}}


# ────────────────────────────────────────────
# ROWS
# ────────────────────────────────────────────


class TestParseRow:
    def test_full_row(self):
        record = parse_row(csv_row())
        assert record.url == "/radar/foo/"
        assert record.query_date == "2025-05-31"
        assert record.metrics.views == 120
        assert record.metrics.sessions == 80
        assert record.metrics.active_users == 70
        assert record.metrics.engagement_rate == 62.5
        assert record.metrics.avg_duration == 45.25
        assert record.data_found is True
        assert record.traffic_breakdown["google"]["views"] == 100
        assert record.processed_at

    def test_url_is_normalized(self):
        assert parse_row(csv_row(URL="radar/foo")).url == "/radar/foo/"

    def test_missing_url_is_malformed(self):
        with pytest.raises(MalformedRowError):
            parse_row(csv_row(URL="  "))

    def test_data_found_only_for_literal_true(self):
        assert parse_row(csv_row(**{"Datos encontrados": "TRUE"})).data_found is False
        assert parse_row(csv_row(**{"Datos encontrados": "1"})).data_found is False
        assert parse_row(csv_row(**{"Datos encontrados": "false"})).data_found is False

    def test_bad_breakdown_keeps_row(self):
        record = parse_row(csv_row(**{"Desglose por fuente": "oops"}))
        assert record.traffic_breakdown == {}
        assert record.metrics.views == 120

    def test_bounce_above_100_adds_warning_once(self):
        record = parse_row(
            csv_row(**{"Tasa rebote (%)": "150", "Advertencias": BOUNCE_ABOVE_100})
        )
        assert record.warnings == [BOUNCE_ABOVE_100]

    def test_lists_are_split(self):
        record = parse_row(csv_row(Advertencias="a; b", Insights="c"))
        assert record.warnings == ["a", "b"]
        assert record.insights == ["c"]

    def test_missing_columns_default_to_zero(self):
        record = parse_row({"URL": "/only-url/"})
        assert record.metrics.views == 0
        assert record.metrics.bounce_rate == 0.0
        assert record.data_found is False


class TestValidation:
    def test_views_without_sessions_warns(self):
        warnings, _ = validate_consistency(Metrics(views=10, sessions=0))
        assert len(warnings) == 1

    def test_more_sessions_than_views_is_insight(self):
        warnings, insights = validate_consistency(Metrics(views=5, sessions=8))
        assert warnings == []
        assert len(insights) == 1

    def test_negative_bounce_warns(self):
        warnings, _ = validate_consistency(Metrics(bounce_rate=-1.0))
        assert len(warnings) == 1
