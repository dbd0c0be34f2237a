# tests/test_jsonquery.py
"""
Query path evaluation against resource documents.
"""

import pytest

from scanner.errors import JSONQueryError
from scanner.jsonquery import parse_path, run_single_output

POD = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {
        "name": "nginx",
        "labels": {"app.kubernetes.io/name": "web"},
        "annotations": {"0": "zero", "a]b": "bracketed"},
        "ownerReferences": None,
    },
    "spec": {
        "containers": [
            {"name": "nginx", "image": "nginx:1.21", "ports": [{"containerPort": 80}]},
        ],
        "hostNetwork": False,
        "nodeName": None,
    },
}


def test_parse_path_spellings():
    assert parse_path("spec.containers.0.image") == ["spec", "containers", 0, "image"]
    assert parse_path(".spec.containers[0].image") == ["spec", "containers", 0, "image"]
    assert parse_path('.metadata.labels["app.kubernetes.io/name"]') == ["metadata", "labels", "app.kubernetes.io/name"]
    assert parse_path(".") == []


@pytest.mark.parametrize("path", ["spec.containers.0.image", ".spec.containers[0].image"])
def test_found_scalar(path):
    assert run_single_output(path, POD) == ("nginx:1.21", True)


def test_quoted_key_with_dots():
    assert run_single_output('.metadata.labels["app.kubernetes.io/name"]', POD) == ("web", True)


def test_quoted_key_with_closing_bracket():
    assert parse_path('.metadata.annotations["a]b"]') == ["metadata", "annotations", "a]b"]
    assert run_single_output('.metadata.annotations["a]b"]', POD) == ("bracketed", True)
    assert run_single_output(".metadata.annotations['a]b']", POD) == ("bracketed", True)


def test_false_is_found():
    assert run_single_output(".spec.hostNetwork", POD) == (False, True)


def test_numeric_segment_on_map_is_a_key():
    assert run_single_output("metadata.annotations.0", POD) == ("zero", True)


def test_structured_value_is_flattened_to_json():
    value, found = run_single_output(".spec.containers[0].ports", POD)
    assert found
    assert value == '[{"containerPort":80}]'


@pytest.mark.parametrize("path", [
    ".spec.serviceAccountName",
    ".spec.containers[3].image",
    ".spec.nodeName",
    ".metadata.ownerReferences[0].kind",
    ".status.phase",
])
def test_not_found(path):
    assert run_single_output(path, POD) == (None, False)


@pytest.mark.parametrize("path", [
    "",
    "spec..containers",
    "spec.",
    ".spec.containers[0",
    ".spec.containers]",
    ".spec.containers[x]",
    ".spec.containers[]",
    '.metadata.labels["app]',
    '.metadata.labels["app"x]',
    '.metadata.annotations["a]b"',
])
def test_malformed_path(path):
    with pytest.raises(JSONQueryError):
        run_single_output(path, POD)


@pytest.mark.parametrize("path", [
    ".spec.containers.name",
    ".spec.containers[0].image.tag",
    ".spec.hostNetwork[0]",
])
def test_type_mismatch(path):
    with pytest.raises(JSONQueryError):
        run_single_output(path, POD)
