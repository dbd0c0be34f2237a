# tests/conftest.py
"""
Shared fixtures: an in-memory cluster client and an evidence collector.
"""

import pytest

from scanner.errors import ClusterClientError
from scanner.reporter import EvidenceCollector


class FakeClusterClient:
    """
    Test double for ClusterClient.

    - get_result / list_result: what fetch_one / list_many return
    - error: raised by both calls when set
    - calls: every call made, as (method, kwargs)
    """

    def __init__(self, get_result=None, list_result=None, error=None):
        self.get_result = get_result
        self.list_result = list_result or []
        self.error = error
        self.calls = []

    def fetch_one(self, group, kind, version, name, namespace=None, timeout=None):
        self.calls.append(("fetch_one", dict(group=group, kind=kind, version=version,
                                              name=name, namespace=namespace, timeout=timeout)))
        if self.error:
            raise self.error
        return self.get_result

    def list_many(self, group, kind, version, namespace=None, timeout=None):
        self.calls.append(("list_many", dict(group=group, kind=kind, version=version,
                                              namespace=namespace, timeout=timeout)))
        if self.error:
            raise self.error
        return list(self.list_result)


def make_pod(name="nginx", namespace="default", image="nginx:1.21", **extra):
    pod = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "namespace": namespace, "labels": {"app": name}},
        "spec": {"containers": [{"name": name, "image": image}], "hostNetwork": False},
    }
    pod.update(extra)
    return pod


@pytest.fixture
def fake_client():
    return FakeClusterClient()


@pytest.fixture
def collector():
    return EvidenceCollector()


@pytest.fixture
def not_found_error():
    return ClusterClientError('pods "nginx" not found', status=404)
