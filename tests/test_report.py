"""Tests for the daily report model"""

from src.core.models.report import DailyReport, ReportEntry


def make_report(entries):
    return DailyReport(date="2026-10-18", user_name="张三", entries=entries)


def test_subject():
    assert make_report([]).generate_subject() == "[日报] 张三"


def test_total_hours():
    report = make_report(
        [
            ReportEntry("Glance", 1, "Sync", 1.5),
            ReportEntry("Backend", 2, "Build", 2.0),
        ]
    )
    assert report.total_hours == 3.5


def test_summary_prefers_comments():
    assert ReportEntry("Glance", 1, "Sync", 1.0, comments="修复").summary == "修复"
    assert ReportEntry("Glance", 1, "Sync", 1.0).summary == "Sync"


def test_projects_sorted_by_hours():
    report = make_report(
        [
            ReportEntry("Small", 1, "a", 0.5),
            ReportEntry("Large", 2, "b", 2.0),
            ReportEntry("Small", 3, "c", 0.5),
            ReportEntry("Large", 4, "d", 1.0),
        ]
    )

    groups = report.entries_by_project()

    assert [group.project_name for group in groups] == ["Large", "Small"]
    assert groups[0].total_hours == 3.0
    assert [entry.issue_id for entry in groups[1].entries] == [1, 3]


def test_html_report():
    report = make_report(
        [
            ReportEntry("Glance", 1, "Sync", 1.25, comments="修复同步"),
            ReportEntry("Glance", 2, "Login page", 0.5),
        ]
    )

    html = report.generate_html_report()

    assert html.startswith("<!DOCTYPE html>")
    assert html.endswith("</html>")
    assert '<meta charset="UTF-8">' in html
    assert "各位好，我是张三" in html
    assert "<h3>Glance</h3>" in html
    assert "内容：修复同步；Login page<br/>时间：1.8h<br/>" in html


def test_empty_report_still_renders():
    html = make_report([]).generate_html_report()
    assert "■ 今日成果" in html
    assert "<h3>" not in html


def test_first_project_follows_heading_directly():
    html = make_report([ReportEntry("Glance", 1, "Sync", 1.0)]).generate_html_report()
    assert "■ 今日成果 <br/><h3>Glance</h3>\n" in html
