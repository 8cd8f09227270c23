"""Export a job and its results as JSON, CSV or a standalone HTML report."""

import csv
import io
import json
from datetime import datetime

from jinja2 import Environment

from migration_verifier.core.schemas import JobDetail, UrlResult

EXPORT_FORMATS = ("json", "csv", "html")

CSV_HEADERS = [
    "Source URL",
    "New URL",
    "Status Code",
    "Result",
    "Final URL",
    "Redirect Chain",
    "Error",
    "Retry Count",
    "Checked At",
]

CHAIN_SEPARATOR = " → "

_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>URL Comparison Report - {{ job.name or "Untitled" }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; }
        .header { background: #f5f5f5; padding: 20px; border-radius: 8px; margin-bottom: 20px; }
        .summary { display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 15px; margin-bottom: 30px; }
        .summary-card { background: #fff; border: 1px solid #ddd; padding: 15px; border-radius: 6px; text-align: center; }
        .summary-number { font-size: 24px; font-weight: bold; margin-bottom: 5px; }
        .summary-label { font-size: 14px; color: #666; }
        .results-table { width: 100%; border-collapse: collapse; margin-top: 20px; }
        .results-table th, .results-table td { border: 1px solid #ddd; padding: 12px; text-align: left; }
        .results-table th { background: #f5f5f5; font-weight: bold; }
        .results-table tr:nth-child(even) { background: #f9f9f9; }
        .status-ok { color: #22c55e; font-weight: bold; }
        .status-missing, .status-error { color: #ef4444; font-weight: bold; }
        .status-redirected { color: #3b82f6; font-weight: bold; }
        .error { color: #ef4444; font-size: 12px; }
        .redirect-chain { font-size: 12px; color: #666; }
    </style>
</head>
<body>
    <div class="header">
        <h1>URL Comparison Report</h1>
        <h2>{{ job.name or "Untitled" }}</h2>
        <p>Job ID: {{ job.id }}</p>
        <p>Status: {{ job.status.value }} ({{ job.completed_urls }}/{{ job.total_urls }})</p>
        <p>Created: {{ job.created_at.strftime("%Y-%m-%d %H:%M:%S") }}</p>
        <p>New Domain: {{ job.new_domain }}</p>
    </div>

    <div class="summary">
        {% for label, value, css in cards %}
        <div class="summary-card">
            <div class="summary-number {{ css }}">{{ value }}</div>
            <div class="summary-label">{{ label }}</div>
        </div>
        {% endfor %}
    </div>

    <h3>Detailed Results</h3>
    <table class="results-table">
        <thead>
            <tr>
                {% for header in headers %}<th>{{ header }}</th>{% endfor %}
            </tr>
        </thead>
        <tbody>
            {% for r in results %}
            <tr>
                <td>{{ r.source_url }}</td>
                <td>{{ r.new_url }}</td>
                <td>{{ r.status_code if r.status_code is not none else "-" }}</td>
                <td class="status-{{ r.result.value | lower }}">{{ r.result.value }}</td>
                <td>{{ r.final_url or "-" }}</td>
                <td class="redirect-chain">{{ r.redirect_chain | join(separator) if r.redirect_chain else "-" }}</td>
                <td class="error">{{ r.error or "-" }}</td>
                <td>{{ r.retry_count }}</td>
                <td>{{ r.checked_at.strftime("%Y-%m-%d %H:%M:%S") }}</td>
            </tr>
            {% endfor %}
        </tbody>
    </table>

    <div style="margin-top: 30px; font-size: 12px; color: #666; text-align: center;">
        Report generated on {{ generated_at.strftime("%Y-%m-%d %H:%M:%S") }}
    </div>
</body>
</html>
"""

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)


def export_filename(job_id: str, fmt: str) -> str:
    return f"url-comparison-{job_id}.{fmt}"


def export_json(detail: JobDetail) -> str:
    """Export job metadata, summary and results as an indented JSON string."""
    job = detail.job
    data = {
        "job": {
            "id": job.id,
            "name": job.name,
            "new_domain": job.new_domain,
            "created_at": job.created_at.isoformat(),
            "status": job.status.value,
        },
        "summary": detail.summary.model_dump(),
        "results": [r.model_dump(mode="json") for r in detail.results],
        "exported_at": datetime.now().isoformat(),
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_csv(detail: JobDetail) -> str:
    """Export results as CSV, one row per source URL."""
    stream = io.StringIO()
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for r in detail.results:
        writer.writerow(_csv_row(r))
    return stream.getvalue()


def export_html(detail: JobDetail) -> str:
    """Render a standalone HTML report."""
    summary = detail.summary
    cards = [
        ("Total URLs", summary.total_urls, ""),
        ("OK", summary.ok, "status-ok"),
        ("Redirected", summary.redirected, "status-redirected"),
        ("Missing", summary.missing, "status-missing"),
        ("Errors", summary.error, "status-error"),
    ]
    template = _env.from_string(_HTML_TEMPLATE)
    return template.render(
        job=detail.job,
        cards=cards,
        headers=CSV_HEADERS,
        results=detail.results,
        separator=CHAIN_SEPARATOR,
        generated_at=datetime.now(),
    )


def render(detail: JobDetail, fmt: str) -> str:
    """Render ``detail`` in one of EXPORT_FORMATS."""
    if fmt == "json":
        return export_json(detail)
    if fmt == "csv":
        return export_csv(detail)
    if fmt == "html":
        return export_html(detail)
    msg = f"Unsupported format '{fmt}'. Use {', '.join(EXPORT_FORMATS)}"
    raise ValueError(msg)


def _csv_row(r: UrlResult) -> list[str | int]:
    return [
        r.source_url,
        r.new_url,
        "" if r.status_code is None else r.status_code,
        r.result.value,
        r.final_url or "",
        CHAIN_SEPARATOR.join(r.redirect_chain),
        r.error or "",
        r.retry_count,
        r.checked_at.isoformat(),
    ]
