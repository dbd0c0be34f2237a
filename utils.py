# utils.py
"""
Utility helpers: JSON loading, evidence report generation, and console output.

- Uses Rich for colorful, wrapped tables in the terminal.
- Saves JSON, CSV, and HTML reports.
"""

from dataclasses import asdict
from datetime import datetime, timezone
from html import escape
from typing import Any, Dict, List, Optional
import json
import csv
import os
from json import JSONDecodeError

from rich.console import Console
from rich.markup import escape as markup_escape
from rich.table import Table

from models import Evidence

_console = Console()

EVIDENCE_COLUMNS = ["rule_id", "resource"]


def load_json_file(path: str) -> Any:
    """
    Load JSON from a file and return the decoded value.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input JSON file not found: {path}.")
    try:
        with open(path, "r", encoding="utf-8-sig") as fh:
            return json.load(fh)
    except JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e.msg} (line {e.lineno} column {e.colno})") from e


def ensure_reports_dir(path: str = "reports") -> str:
    os.makedirs(path, exist_ok=True)
    return path


def data_columns(evidence: List[Evidence]) -> List[str]:
    """
    Union of record keys across all evidence, in first-seen order.
    """
    columns: List[str] = []
    for ev in evidence:
        for key in ev.data:
            if key not in columns:
                columns.append(key)
    return columns


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def evidence_to_table_rows(evidence: List[Evidence]) -> List[List[str]]:
    rows: List[List[str]] = []
    for ev in evidence:
        fields = ", ".join(f"{k}={format_value(v)}" for k, v in ev.data.items())
        rows.append([ev.rule_id, ev.resource, fields])
    return rows


def save_report(evidence: List[Evidence], mode: str, extra: Optional[dict] = None,
                errors: Optional[List[str]] = None, out_dir: str = "reports") -> Dict[str, str]:
    """
    Save JSON, CSV, and HTML reports and return their paths.
    """
    out_dir = ensure_reports_dir(out_dir)
    now = datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
    report = {
        "scan_time": now,
        "mode": mode,
        "summary": {"evidence_count": len(evidence), "error_count": len(errors or [])},
        "evidence": [asdict(ev) for ev in evidence],
        "errors": list(errors or []),
    }
    if extra:
        report["extra"] = extra

    base_ts = now.replace(":", "-")
    json_path = os.path.join(out_dir, f"scan-{base_ts}-{mode}.json")
    csv_path = os.path.join(out_dir, f"scan-{base_ts}-{mode}.csv")
    html_path = os.path.join(out_dir, f"scan-{base_ts}-{mode}.html")

    # JSON
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2)

    # CSV: one column per record key seen in any evidence
    columns = data_columns(evidence)
    with open(csv_path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(EVIDENCE_COLUMNS + columns)
        for ev in evidence:
            writer.writerow([ev.rule_id, ev.resource] + [format_value(ev.data.get(c)) for c in columns])

    # HTML
    html_rows: List[str] = []
    html_rows.append("<!doctype html>")
    html_rows.append("<html><head><meta charset='utf-8'><title>Evidence Report</title>")
    html_rows.append("<style>body{font-family:Arial,Helvetica,sans-serif;margin:20px}table{border-collapse:collapse;width:100%}th,td{border:1px solid #ddd;padding:8px}th{background:#f2f2f2;text-align:left}tr:nth-child(even){background:#fafafa}pre{white-space:pre-wrap;word-wrap:break-word}</style>")
    html_rows.append("</head><body>")
    html_rows.append(f"<h2>Evidence Report - {now} - mode: {escape(mode)}</h2>")
    html_rows.append(f"<p>Total evidence: {len(evidence)}</p>")
    if extra:
        html_rows.append("<div><strong>Metadata:</strong><ul>")
        for k, v in extra.items():
            html_rows.append(f"<li>{escape(str(k))}: {escape(str(v))}</li>")
        html_rows.append("</ul></div>")
    if errors:
        html_rows.append("<div class='errors'><strong>Errors:</strong><ul>")
        for err in errors:
            html_rows.append(f"<li>{escape(err)}</li>")
        html_rows.append("</ul></div>")
    html_rows.append("<table><thead><tr><th>Rule</th><th>Resource</th><th>Fields</th></tr></thead><tbody>")
    for ev in evidence:
        fields = "\n".join(f"{k}: {format_value(v)}" for k, v in ev.data.items())
        html_rows.append(
            f"<tr><td>{escape(ev.rule_id)}</td><td>{escape(ev.resource)}</td><td><pre>{escape(fields)}</pre></td></tr>"
        )
    html_rows.append("</tbody></table></body></html>")
    with open(html_path, "w", encoding="utf-8") as fh:
        fh.write("\n".join(html_rows))

    return {"json": json_path, "csv": csv_path, "html": html_path}

# --- Console printing with color/wrapping ---

def print_summary_and_report_path(evidence: List[Evidence], report_paths: Dict[str, str],
                                  errors: Optional[List[str]] = None, show_top: int = 5,
                                  print_full_table: bool = False):
    """
    Print a compact summary and a colorful table of reported evidence.
    """
    total = len(evidence)
    _console.print("\nScan summary:")
    _console.print(f"- Total evidence records: {total}")
    for err in errors or []:
        _console.print(f"- [bold red]Error:[/bold red] {markup_escape(err)}", highlight=False)
    if total:
        rows = evidence_to_table_rows(evidence)
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Rule", style="magenta")
        table.add_column("Resource", style="cyan", overflow="fold")
        table.add_column("Fields", overflow="fold")
        for r in (rows if print_full_table else rows[:show_top]):
            table.add_row(*(markup_escape(cell) for cell in r))
        _console.print(table)
    _console.print("\nSaved reports:")
    _console.print(f"- JSON: {report_paths.get('json')}")
    _console.print(f"- CSV:  {report_paths.get('csv')}")
    _console.print(f"- HTML: {report_paths.get('html')}\n")
