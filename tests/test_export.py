"""Tests for report tables and the CSV, JSON, XLSX and PDF exporters."""

import csv
import json
import pytest
from datetime import datetime, timezone
from io import BytesIO, StringIO

from openpyxl import load_workbook

from olive_lifecycle.errors import ValidationError
from olive_lifecycle.field import Field
from olive_lifecycle.services.analytics import CompletionRates, CostAnalysis, FieldMetrics
from olive_lifecycle.services.export import (
    CSVExporter,
    ExportData,
    ExportFormat,
    ExportManager,
    JSONExporter,
    PDFExporter,
    XLSXExporter,
    sanitize_text_for_pdf,
)
from olive_lifecycle.services.reports import (
    COST_ANALYSIS_HEADERS,
    FIELD_SUMMARY_HEADERS,
    TASK_COMPLETION_HEADERS,
    completion_rates_report,
    cost_analysis_report,
    field_metrics_report,
    field_summary_report,
    task_completion_report,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def table():
    return ExportData(
        headers=["Name", "Notes"],
        rows=[["North Grove", 'He said "prune"'], ["South, Lower", None]],
        title="Sample",
    )


class TestExportData:

    def test_row_width_checked(self):
        with pytest.raises(ValidationError):
            ExportData(headers=["A", "B"], rows=[["only one"]])


class TestCSVExporter:

    def test_every_cell_quoted(self, table):
        content = CSVExporter().render(table)
        lines = content.splitlines()

        assert lines[0] == '"Name","Notes"'
        assert lines[1] == '"North Grove","He said ""prune"""'
        assert lines[2] == '"South, Lower",""'

    def test_parses_back(self, table):
        rows = list(csv.reader(StringIO(CSVExporter().render(table))))
        assert rows[2] == ["South, Lower", ""]


class TestJSONExporter:

    def test_rows_keyed_by_header(self, table):
        data = json.loads(JSONExporter().render(table))

        assert data["title"] == "Sample"
        assert data["headers"] == ["Name", "Notes"]
        assert data["rows"][0] == {"Name": "North Grove", "Notes": 'He said "prune"'}
        assert "export_timestamp" in data


class TestXLSXExporter:

    def test_workbook_reads_back(self, table):
        workbook = load_workbook(BytesIO(XLSXExporter().render(table)))

        assert workbook.sheetnames == ["Sheet1"]
        rows = list(workbook["Sheet1"].iter_rows(values_only=True))
        assert rows == [
            ("Name", "Notes"),
            ("North Grove", 'He said "prune"'),
            ("South, Lower", None),
        ]

    def test_numbers_stay_numeric(self):
        data = ExportData(headers=["Field", "Area", "When"],
                          rows=[["North", 12.5, utc(2024, 6, 1)]])
        sheet = load_workbook(BytesIO(XLSXExporter().render(data))).active

        assert sheet["B2"].value == 12.5
        assert sheet["C2"].value == "2024-06-01 00:00:00+00:00"


class TestPDFExporter:

    def test_renders_pdf_bytes(self, table):
        content = PDFExporter().render(table)
        assert isinstance(content, bytes)
        assert content.startswith(b"%PDF")

    def test_long_cells_and_unicode(self):
        data = ExportData(
            headers=["Field", "Notes"],
            rows=[["Grove \u2014 East", "x" * 300], ["Caf\u00e9 \u2018row\u2019", "\u2026"]],
            title="Unicode \u201cReport\u201d",
        )
        assert PDFExporter().render(data).startswith(b"%PDF")

    def test_sanitize(self):
        assert sanitize_text_for_pdf("\u2018a\u2019 \u2013 b\u2026") == "'a' - b..."
        assert sanitize_text_for_pdf("\u4e2d") == "?"


class TestExportManager:

    @pytest.mark.parametrize("format_type,suffix", [
        (ExportFormat.CSV, ".csv"),
        (ExportFormat.JSON, ".json"),
        (ExportFormat.XLSX, ".xlsx"),
        (ExportFormat.PDF, ".pdf"),
    ])
    def test_export_writes_file(self, table, tmp_path, format_type, suffix):
        path = ExportManager().export(table, format_type, "report", tmp_path / "out")

        assert path == tmp_path / "out" / f"report{suffix}"
        assert path.stat().st_size > 0

    def test_supported_formats(self):
        assert set(ExportManager().get_supported_formats()) == set(ExportFormat)


class TestReports:

    @pytest.fixture
    def fields(self):
        return [
            Field(id="f1", owner_id="u1", name="North Grove", area=12.5, variety="Kalamata"),
            Field(id="f2", owner_id="u1", name="South Grove", area=8, current_lifecycle_year="high"),
        ]

    def test_field_summary(self, fields, make_task):
        tasks = [
            make_task(field_id="f1", status="completed"),
            make_task(field_id="f1"),
        ]
        report = field_summary_report(fields, tasks)

        assert report.headers == FIELD_SUMMARY_HEADERS
        assert report.rows == [
            ["North Grove", 12.5, "Kalamata", "low", 2, 1, "50.0%"],
            ["South Grove", 8, "N/A", "high", 0, 0, "0%"],
        ]

    def test_field_summary_selection(self, fields):
        report = field_summary_report(fields, [], field_ids=["f2"])
        assert [row[0] for row in report.rows] == ["South Grove"]

    def test_task_completion(self, fields, make_task):
        tasks = [
            make_task(field_id="f1", title="Prune", assigned_to="u-prod",
                      scheduled_start=utc(2024, 6, 10), scheduled_end=utc(2024, 6, 12)),
            make_task(field_id="gone", title="Orphan"),
        ]
        report = task_completion_report(tasks, fields)

        assert report.headers == TASK_COMPLETION_HEADERS
        assert report.rows[0] == ["Prune", "North Grove", "Pruning", "pending", "u-prod",
                                  "2024-06-10", "2024-06-12", "N/A"]
        assert report.rows[1][1] == "Unknown"
        assert report.rows[1][4] == "Unassigned"

    def test_cost_analysis(self):
        analysis = CostAnalysis(total_cost=350.5, cost_by_field=[
            {"fieldId": "f1", "fieldName": "North Grove", "cost": 350.5},
        ])
        report = cost_analysis_report(analysis)

        assert report.headers == COST_ANALYSIS_HEADERS
        assert report.rows == [["North Grove", "$350.50"]]

    def test_field_metrics(self):
        report = field_metrics_report([
            FieldMetrics(field_id="f1", field_name="North Grove", total_tasks=4, completed_tasks=1,
                         completion_rate=25.0, total_cost=100.0, average_cost_per_task=100.0),
        ])
        assert report.rows == [["North Grove", 4, 1, "25.0%", "$100.00", "$100.00"]]

    def test_completion_rates(self):
        rates = CompletionRates(
            daily=[{"date": "2024-06-03", "completed": 1, "total": 2, "rate": 50.0}],
            weekly=[{"week": "2024-06-02", "completed": 1, "total": 2, "rate": 50.0}],
            monthly=[{"month": "2024-06", "completed": 1, "total": 2, "rate": 50.0}],
        )
        report = completion_rates_report(rates)
        assert [row[:2] for row in report.rows] == [
            ["Daily", "2024-06-03"], ["Weekly", "2024-06-02"], ["Monthly", "2024-06"],
        ]
