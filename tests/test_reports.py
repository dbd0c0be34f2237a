# tests/test_reports.py
"""
Report writer tests.

- Verifies that JSON, CSV and HTML reports are created and contain the evidence.
- Parses the HTML report with BeautifulSoup.
- Uses tmp_path to isolate report outputs.
"""

import csv
import json
import os

from bs4 import BeautifulSoup

from models import Evidence
from utils import save_report

EVIDENCE = [
    Evidence(rule_id="cis-4.1", resource="kube://v1/Pod/default/web",
             data={"image": "nginx:1.21", "kube_resource_name": "web"}),
    Evidence(rule_id="cis-4.1", resource="kube://v1/Pod/default/db",
             data={"hostNetwork": True, "kube_resource_name": "db"}),
]


def test_reports_are_written(tmp_path):
    paths = save_report(EVIDENCE, mode="dummy", extra={"source": "test"}, out_dir=str(tmp_path))
    assert os.path.exists(paths["json"])
    assert os.path.exists(paths["csv"])
    assert os.path.exists(paths["html"])

    with open(paths["json"], "r", encoding="utf-8") as fh:
        report = json.load(fh)
    assert report["mode"] == "dummy"
    assert report["summary"]["evidence_count"] == 2
    assert report["extra"] == {"source": "test"}
    assert report["evidence"][0]["data"]["image"] == "nginx:1.21"


def test_csv_has_a_column_per_record_key(tmp_path):
    paths = save_report(EVIDENCE, mode="dummy", out_dir=str(tmp_path))
    with open(paths["csv"], "r", encoding="utf-8", newline="") as fh:
        rows = list(csv.reader(fh))
    assert rows[0] == ["rule_id", "resource", "image", "kube_resource_name", "hostNetwork"]
    assert rows[1] == ["cis-4.1", "kube://v1/Pod/default/web", "nginx:1.21", "web", ""]
    assert rows[2] == ["cis-4.1", "kube://v1/Pod/default/db", "", "db", "true"]


def test_html_report_contains_evidence_and_errors(tmp_path):
    errors = ["cis-5.1: Unable to list Kube resources:'v1/secrets'"]
    paths = save_report(EVIDENCE, mode="kube", errors=errors, out_dir=str(tmp_path))

    with open(paths["html"], "r", encoding="utf-8") as fh:
        soup = BeautifulSoup(fh, "html.parser")

    assert "mode: kube" in soup.find("h2").get_text(strip=True)
    assert "secrets" in soup.find("div", class_="errors").get_text()

    rows = soup.find("table").find_all("tr")
    assert len(rows) == 3
    cols = [td.get_text(strip=True) for td in rows[1].find_all("td")]
    assert cols[0] == "cis-4.1"
    assert cols[1] == "kube://v1/Pod/default/web"
    assert "image: nginx:1.21" in cols[2]
