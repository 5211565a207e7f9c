# pwlifecycle/reporting/html_reporter.py
"""
HTML report writer.

One ``HtmlReporter`` per test class writes one HTML file. Each test gets a
``ReportEntry`` with an append-only, timestamped log of INFO, PASS,
WARNING and FAIL events, optionally carrying an inline screenshot.
Entries may be written from several worker threads at once.
"""

import base64
import html
import threading
import traceback
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from jinja2 import Template

from pwlifecycle.core.exceptions.enums import LogStatus
from pwlifecycle.core.logger import get_logger

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title|e }}</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 0;
            padding: 20px;
            background: #f5f5f5;
            line-height: 1.5;
        }
        .container {
            max-width: 1400px;
            margin: 0 auto;
            background: white;
            padding: 30px;
            border-radius: 8px;
            box-shadow: 0 2px 8px rgba(0,0,0,0.1);
        }
        h1 { margin-bottom: 4px; color: #333; }
        .generated { color: #666; margin-bottom: 20px; }
        .summary { display: flex; gap: 16px; margin: 20px 0; }
        .metric { background: #f9f9f9; padding: 12px 20px; border-radius: 6px; text-align: center; }
        .metric .value { font-size: 1.6em; font-weight: bold; }
        .test { border: 1px solid #e0e0e0; border-radius: 6px; margin: 16px 0; }
        .test h2 { margin: 0; padding: 12px 16px; font-size: 1.1em; background: #fafafa; }
        table { width: 100%; border-collapse: collapse; }
        td { padding: 6px 16px; border-top: 1px solid #eee; vertical-align: top; }
        td.time { white-space: nowrap; color: #888; width: 90px; }
        td.status { width: 80px; }
        .badge { padding: 2px 8px; border-radius: 4px; color: white; font-size: 0.85em; }
        .info { background: #2196f3; }
        .pass { background: #4caf50; }
        .warning { background: #ff9800; }
        .fail { background: #f44336; }
        pre { white-space: pre-wrap; background: #f4f4f4; padding: 8px; }
        img.screenshot { max-width: 100%; border: 1px solid #ddd; margin-top: 8px; }
    </style>
</head>
<body>
<div class="container">
    <h1>{{ title|e }}</h1>
    <div class="generated">Generated {{ generated_at }}</div>
    <div class="summary">
        <div class="metric"><div class="value">{{ total }}</div>Tests</div>
        {% for status, count in counts.items() %}
        <div class="metric"><div class="value">{{ count }}</div><span class="badge {{ status }}">{{ status|upper }}</span></div>
        {% endfor %}
    </div>
    {% for entry in entries %}
    <div class="test">
        <h2><span class="badge {{ entry.status }}">{{ entry.status|upper }}</span> {{ entry.name|e }}</h2>
        <table>
        {% for event in entry.events %}
            <tr>
                <td class="time">{{ event.time }}</td>
                <td class="status"><span class="badge {{ event.status }}">{{ event.status|upper }}</span></td>
                <td>
                    {{ event.message }}
                    {% if event.media %}<br/><img class="screenshot" src="data:image/png;base64,{{ event.media }}" alt="screenshot"/>{% endif %}
                </td>
            </tr>
        {% endfor %}
        </table>
    </div>
    {% endfor %}
</div>
</body>
</html>
"""


@dataclass(frozen=True)
class LogEvent:
    """One line of a report entry. ``message`` is HTML; ``media`` is base64 PNG."""

    timestamp: datetime
    status: LogStatus
    message: str
    media: Optional[str] = None


class ReportEntry:
    """
    The report node for one test.

    Example:
        >>> entry = reporter.create_entry("test_login")
        >>> entry.info("test_login - started")
        >>> entry.fail("Login failed", media=png_bytes)
    """

    def __init__(self, name: str):
        self.name = name
        self.created_at = datetime.now()
        self._events: List[LogEvent] = []
        self._lock = threading.Lock()

    def log(
            self,
            status: LogStatus,
            message: str,
            media: Optional[Union[bytes, str]] = None
    ) -> "ReportEntry":
        """
        Append an event.

        Args:
            status: Event status
            message: HTML message, embedded as-is
            media: PNG bytes or an already base64-encoded PNG
        """
        if isinstance(media, bytes):
            media = base64.b64encode(media).decode("ascii")

        event = LogEvent(datetime.now(), LogStatus(status), message, media)
        with self._lock:
            self._events.append(event)
        return self

    def info(self, message: str, media: Optional[Union[bytes, str]] = None) -> "ReportEntry":
        return self.log(LogStatus.INFO, message, media)

    def passed(self, message: str) -> "ReportEntry":
        return self.log(LogStatus.PASS, message)

    def warning(self, message: str) -> "ReportEntry":
        return self.log(LogStatus.WARNING, message)

    def fail(self, message: str, media: Optional[Union[bytes, str]] = None) -> "ReportEntry":
        return self.log(LogStatus.FAIL, message, media)

    @property
    def events(self) -> List[LogEvent]:
        with self._lock:
            return list(self._events)

    @property
    def status(self) -> LogStatus:
        """The most severe status logged so far (INFO for an empty entry)."""
        events = self.events
        if not events:
            return LogStatus.INFO
        return max((event.status for event in events), key=lambda s: s.weight)

    def messages(self, status: Optional[LogStatus] = None) -> List[str]:
        return [e.message for e in self.events if status is None or e.status == status]


class HtmlReporter:
    """
    Report writer targeting one HTML file.

    Example:
        >>> reporter = HtmlReporter(Path("build/reports/LoginTest_Results.html"))
        >>> entry = reporter.create_entry("test_login")
        >>> reporter.flush()
    """

    def __init__(self, file_path: Union[str, Path], title: Optional[str] = None):
        self.file_path = Path(file_path)
        self.title = title or self.file_path.stem
        self._entries: List[ReportEntry] = []
        self._lock = threading.Lock()

    def create_entry(self, name: str) -> ReportEntry:
        """Create and register the entry for a test."""
        entry = ReportEntry(name)
        with self._lock:
            self._entries.append(entry)
        return entry

    @property
    def entries(self) -> List[ReportEntry]:
        with self._lock:
            return list(self._entries)

    def _template_data(self) -> Dict:
        entries = []
        counts: Dict[str, int] = {}
        for entry in self.entries:
            status = entry.status.value
            counts[status] = counts.get(status, 0) + 1
            entries.append({
                "name": entry.name,
                "status": status,
                "events": [
                    {
                        "time": event.timestamp.strftime("%H:%M:%S"),
                        "status": event.status.value,
                        "message": event.message,
                        "media": event.media,
                    }
                    for event in entry.events
                ],
            })
        return {
            "title": self.title,
            "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            "total": len(entries),
            "counts": counts,
            "entries": entries,
        }

    def render(self) -> str:
        return Template(HTML_TEMPLATE).render(**self._template_data())

    def flush(self) -> Path:
        """Write the report to disk and return its path."""
        content = self.render()
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self.file_path.write_text(content, encoding="utf-8")
        get_logger("html_reporter").info(f"Report written: {self.file_path}", report=str(self.file_path), entries=len(self.entries))
        return self.file_path


def escape_html(value: Optional[str]) -> str:
    """Escape a string for embedding into HTML. None becomes an empty string."""
    if value is None:
        return ""
    return html.escape(value, quote=True)


def to_short_error(error: Optional[BaseException]) -> str:
    """One-line ``Type: message`` description of an error."""
    if error is None:
        return "Unknown error"
    error_type = type(error)
    name = error_type.__qualname__
    if error_type.__module__ not in ("builtins", "__main__"):
        name = f"{error_type.__module__}.{name}"
    message = str(error)
    return f"{name}: {message}" if message.strip() else name


def to_stack_trace_string(error: Optional[BaseException]) -> str:
    if error is None:
        return ""
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def to_collapsible_stack_html(error: Optional[BaseException]) -> str:
    """Wrap the formatted stack trace in a collapsible HTML block."""
    stack = escape_html(to_stack_trace_string(error))
    return f"<details><summary>Show full stack trace</summary><pre>{stack}</pre></details>"
