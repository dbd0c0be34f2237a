# tests/test_main.py
"""
End-to-end tests of the CLI in dummy mode.
"""

import json

import pytest

import main
from conftest import FakeClusterClient, make_pod

RULES = {
    "rules": [
        {
            "id": "cis-5.2.4",
            "resource": {
                "kind": "pods",
                "namespace": "default",
                "apiRequest": {"verb": "list"},
                "report": [
                    {"kind": "jsonquery", "property": ".spec.hostNetwork", "as": "host_network"},
                ],
            },
        },
        {
            "id": "broken",
            "resource": {"kind": "pods", "apiRequest": {"verb": "get"}},
        },
    ]
}

RESOURCES = {
    "resources": [
        {"group": "", "version": "v1", "resource": "pods", "items": [make_pod("web"), make_pod("db")]},
    ]
}


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_rules_accepts_single_rule(tmp_path):
    path = write_json(tmp_path / "rule.json", RULES["rules"][0])
    assert [r["id"] for r in main.load_rules(path)] == ["cis-5.2.4"]


def test_run_checks_keeps_going_after_a_failing_rule():
    kube_client = FakeClusterClient(list_result=[make_pod("web")])
    evidence, errors = main.run_checks(RULES["rules"], kube_client)
    assert [ev.data["host_network"] for ev in evidence] == [False]
    assert len(errors) == 1
    assert errors[0].startswith("broken: ")


def test_run_checks_records_configuration_errors():
    evidence, errors = main.run_checks([{"id": "no-kind", "resource": {"apiRequest": {"verb": "list"}}}],
                                       FakeClusterClient())
    assert evidence == []
    assert "resource kind is empty" in errors[0]


def test_run_checks_survives_malformed_rules():
    malformed = [
        {"id": "bad-request", "resource": {"kind": "pods", "apiRequest": "list"}},
        {"id": "bad-fields", "resource": {"kind": "pods", "apiRequest": {"verb": "list"},
                                          "reportFields": ["spec.hostNetwork"]}},
        "not-a-rule",
    ]
    kube_client = FakeClusterClient(list_result=[make_pod("web")])
    evidence, errors = main.run_checks(malformed + [RULES["rules"][0]], kube_client)
    assert [ev.data["host_network"] for ev in evidence] == [False]
    assert len(errors) == 3
    assert errors[0].startswith("bad-request: ")
    assert "apiRequest must be a mapping" in errors[0]
    assert "report fields must be a list of mappings" in errors[1]
    assert "rule must be a mapping" in errors[2]


def test_dummy_mode_writes_reports_and_exits_non_zero(tmp_path):
    rules = write_json(tmp_path / "rules.json", RULES)
    resources = write_json(tmp_path / "resources.json", RESOURCES)
    report_dir = tmp_path / "reports"

    with pytest.raises(SystemExit, match="1 check"):
        main.main(["--mode", "dummy", "--rules", rules, "--file", resources, "--report-dir", str(report_dir)])

    reports = list(report_dir.glob("*.json"))
    assert len(reports) == 1
    report = json.loads(reports[0].read_text(encoding="utf-8"))
    assert report["summary"] == {"evidence_count": 2, "error_count": 1}
    assert {ev["resource"] for ev in report["evidence"]} == {
        "kube://v1/Pod/default/web",
        "kube://v1/Pod/default/db",
    }


def test_dummy_mode_requires_file(tmp_path):
    rules = write_json(tmp_path / "rules.json", RULES)
    with pytest.raises(SystemExit, match="requires --file"):
        main.main(["--mode", "dummy", "--rules", rules])
