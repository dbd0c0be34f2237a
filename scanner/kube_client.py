# scanner/kube_client.py
"""
Cluster access for the kubeapiserver check.

- ClusterClient is the only surface the check needs: fetch one resource or list a collection.
- DynamicClusterClient talks to a live API server through kubernetes.dynamic.
- FileClusterClient serves resources from a local JSON file (offline testing).
- Every failure is raised as ClusterClientError; callers never see kubernetes exceptions.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError, ResourceNotUniqueError
from urllib3.exceptions import HTTPError

from scanner.errors import ClusterClientError
from utils import load_json_file

logger = logging.getLogger(__name__)


class ClusterClient(Protocol):
    def fetch_one(self, group: str, kind: str, version: str, name: str,
                  namespace: Optional[str] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        ...

    def list_many(self, group: str, kind: str, version: str,
                  namespace: Optional[str] = None, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        ...


def group_version(group: str, version: str) -> str:
    return f"{group}/{version}" if group else version


# --- Live API server ------------------------------------------------------

class DeadlineApiClient(client.ApiClient):
    """
    ApiClient whose requests share one deadline.

    The dynamic client issues discovery requests without a timeout of its
    own; while a deadline is set, every request gets the time left before it.
    """

    deadline: Optional[float] = None

    def call_api(self, *args, **kwargs):
        if self.deadline is not None and kwargs.get("_request_timeout") is None:
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                raise ClusterClientError("query deadline exceeded")
            kwargs["_request_timeout"] = remaining
        return super().call_api(*args, **kwargs)


class DynamicClusterClient:
    """
    ClusterClient backed by the kubernetes dynamic client.

    Configuration is loaded lazily on first use, so building the client never
    touches the network. `kind` is the resource's plural name ("pods",
    "deployments"), resolved through API discovery. The timeout of a get or
    list call bounds the whole call, discovery included.
    """

    def __init__(self, kubeconfig: Optional[str] = None, context: Optional[str] = None,
                 in_cluster: bool = False):
        self._kubeconfig = kubeconfig
        self._context = context
        self._in_cluster = in_cluster
        self._api: Optional[DeadlineApiClient] = None
        self._dynamic: Optional[DynamicClient] = None

    def _api_client(self) -> DeadlineApiClient:
        if self._api is not None:
            return self._api
        configuration = client.Configuration()
        try:
            if self._in_cluster:
                config.load_incluster_config(client_configuration=configuration)
            else:
                config.load_kube_config(config_file=self._kubeconfig, context=self._context,
                                        client_configuration=configuration)
        except ConfigException as e:
            raise ClusterClientError(f"Unable to load Kubernetes configuration: {e}") from e
        # One attempt per request, no client-side retries
        configuration.retries = False
        self._api = DeadlineApiClient(configuration=configuration)
        return self._api

    @contextmanager
    def _deadline(self, timeout: Optional[float]):
        api = self._api_client()
        api.deadline = time.monotonic() + timeout if timeout else None
        try:
            yield
        finally:
            api.deadline = None

    def _client(self) -> DynamicClient:
        if self._dynamic is not None:
            return self._dynamic
        try:
            self._dynamic = DynamicClient(self._api_client())
        except ApiException as e:
            raise ClusterClientError(f"Unable to initialize Kubernetes client: {e.reason}", status=e.status) from e
        except HTTPError as e:
            raise ClusterClientError(f"Unable to initialize Kubernetes client: {e}") from e
        return self._dynamic

    def _resource(self, group: str, kind: str, version: str):
        try:
            return self._client().resources.get(group=group, api_version=version, name=kind)
        except (ResourceNotFoundError, ResourceNotUniqueError) as e:
            raise ClusterClientError(
                f"Unable to resolve resource '{kind}' in '{group_version(group, version)}': {e}"
            ) from e
        except ApiException as e:
            raise ClusterClientError(f"API discovery failed: {e.reason}", status=e.status) from e
        except HTTPError as e:
            raise ClusterClientError(f"API discovery failed: {e}") from e

    def fetch_one(self, group: str, kind: str, version: str, name: str,
                  namespace: Optional[str] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        with self._deadline(timeout):
            resource = self._resource(group, kind, version)
            try:
                obj = resource.get(name=name, namespace=namespace or None)
            except ApiException as e:
                raise ClusterClientError(f"{e.status} {e.reason}", status=e.status) from e
            except HTTPError as e:
                raise ClusterClientError(str(e)) from e
        return obj.to_dict()

    def list_many(self, group: str, kind: str, version: str,
                  namespace: Optional[str] = None, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        with self._deadline(timeout):
            resource = self._resource(group, kind, version)
            try:
                result = resource.get(namespace=namespace or None)
            except ApiException as e:
                raise ClusterClientError(f"{e.status} {e.reason}", status=e.status) from e
            except HTTPError as e:
                raise ClusterClientError(str(e)) from e

        items = result.to_dict().get("items") or []
        # List responses omit apiVersion/kind on each item
        for item in items:
            item.setdefault("apiVersion", resource.group_version)
            item.setdefault("kind", resource.kind)
        return items


# --- Offline JSON file ----------------------------------------------------

class FileClusterClient:
    """
    ClusterClient serving resources from a JSON dump.

    Expected shape:
    {
      "resources": [
        {"group": "", "version": "v1", "resource": "pods", "items": [ {...}, ... ]},
        ...
      ]
    }
    """

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    @classmethod
    def from_file(cls, path: str) -> "FileClusterClient":
        return cls(load_json_file(path))

    def _items(self, group: str, kind: str, version: str, namespace: Optional[str]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for entry in self._data.get("resources", []):
            if (entry.get("group") or "") != group:
                continue
            if (entry.get("version") or "v1") != version or entry.get("resource") != kind:
                continue
            for item in entry.get("items", []) or []:
                item_ns = (item.get("metadata") or {}).get("namespace") or ""
                if namespace and item_ns != namespace:
                    continue
                doc = dict(item)
                doc.setdefault("apiVersion", group_version(group, version))
                items.append(doc)
        return items

    def fetch_one(self, group: str, kind: str, version: str, name: str,
                  namespace: Optional[str] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        for item in self._items(group, kind, version, namespace):
            if (item.get("metadata") or {}).get("name") == name:
                return item
        raise ClusterClientError(f'{kind} "{name}" not found', status=404)

    def list_many(self, group: str, kind: str, version: str,
                  namespace: Optional[str] = None, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        items = self._items(group, kind, version, namespace)
        logger.debug("Loaded %d %s from file", len(items), kind)
        return items
