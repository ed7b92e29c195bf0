"""Daily work report models"""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class ReportEntry:
    """One time entry logged against an issue."""

    project_name: str
    issue_id: int
    issue_subject: str
    hours: float
    comments: str = ""
    activity_name: str = ""

    @property
    def summary(self) -> str:
        """Comments if present, otherwise the issue subject."""
        return self.comments or self.issue_subject


@dataclass(frozen=True)
class ProjectGroup:
    """Entries of one project with their summed hours."""

    project_name: str
    entries: List[ReportEntry]

    @property
    def total_hours(self) -> float:
        return sum(entry.hours for entry in self.entries)


@dataclass
class DailyReport:
    """A day's time entries, rendered as the report mail."""

    date: str
    user_name: str
    entries: List[ReportEntry] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return sum(entry.hours for entry in self.entries)

    def entries_by_project(self) -> List[ProjectGroup]:
        """Group entries by project, largest total first."""
        grouped: Dict[str, List[ReportEntry]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.project_name, []).append(entry)

        groups = [ProjectGroup(name, entries) for name, entries in grouped.items()]
        return sorted(groups, key=lambda group: group.total_hours, reverse=True)

    def generate_subject(self) -> str:
        return f"[日报] {self.user_name}"

    def generate_html_report(self) -> str:
        """Render the report body as a complete HTML document."""
        body = (
            f"各位好，我是{self.user_name}<br/>\n"
            "下面是今日的工作汇报，请查收。<br/><br/>\n"
            "■ 今日成果 <br/>"
        )

        for group in self.entries_by_project():
            content = "；".join(entry.summary for entry in group.entries)
            body += f"<h3>{group.project_name}</h3>\n"
            body += f"内容：{content}<br/>时间：{group.total_hours:.1f}h<br/>\n"

        return (
            "<!DOCTYPE html>\n"
            "<html>\n"
            "<head>\n"
            '    <meta charset="UTF-8">\n'
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            "</head>\n"
            "<body>\n"
            f"{body}\n"
            "</body>\n"
            "</html>"
        )
