# scanner/kube_apiserver.py
"""
Kubeapiserver check: query Kubernetes resources and report selected fields.

- query_resources turns a ResourceSpec into one get or list call.
- extract_field evaluates one report field against one resource.
- KubeApiserverCheck runs the query, builds one record per resource and
  hands every non-empty record to the reporter.

Any error ends the run. Records reported before the error stay reported.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from config import DEFAULT_QUERY_TIMEOUT
from models import EvidenceContext, ExtractionRule, ResourceSpec, Verb
from scanner.errors import (
    ClusterClientError,
    ConfigurationError,
    ExtractionError,
    InvalidRequestError,
    JSONQueryError,
    QueryError,
    UnsupportedRuleError,
)
from scanner.jsonquery import run_single_output
from scanner.kube_client import ClusterClient
from scanner.reporter import Reporter

logger = logging.getLogger(__name__)

PROPERTY_KIND_JSONQUERY = "jsonquery"

# --- Resource query -------------------------------------------------------

def query_resources(kube_client: ClusterClient, spec: ResourceSpec, rule_id: str = "",
                    timeout: Optional[float] = DEFAULT_QUERY_TIMEOUT) -> List[Dict[str, Any]]:
    """
    Run the get or list call described by spec and return the matched resources.

    - get: requires apiRequest.resourceName, returns exactly one resource
    - list: returns every resource of that kind (in namespace when set), possibly none
    - client failures are raised as QueryError with the resource coordinates
    """
    resource = f"{spec.group_version}/{spec.kind}"
    namespace = spec.namespace or None
    name = spec.api_request.resource_name

    if spec.api_request.verb is Verb.GET:
        if not name:
            raise InvalidRequestError(f"{rule_id}: unable to use 'get' apirequest without resource name")
        try:
            doc = kube_client.fetch_one(spec.group, spec.kind, spec.version, name,
                                        namespace=namespace, timeout=timeout)
        except ClusterClientError as e:
            raise QueryError(
                f"Unable to get Kube resource:'{resource}', ns:'{spec.namespace}' name:'{name}', err: {e}",
                resource=resource, namespace=spec.namespace, name=name,
            ) from e
        return [doc]

    try:
        return list(kube_client.list_many(spec.group, spec.kind, spec.version,
                                          namespace=namespace, timeout=timeout))
    except ClusterClientError as e:
        raise QueryError(
            f"Unable to list Kube resources:'{resource}', ns:'{spec.namespace}' name:'{name}', err: {e}",
            resource=resource, namespace=spec.namespace, name=name,
        ) from e

# --- Resource document helpers --------------------------------------------

def resource_coordinates(doc: Dict[str, Any], spec: ResourceSpec) -> Dict[str, str]:
    """
    Kind, group, version, namespace and name of a resource document.
    Missing apiVersion/kind fall back to the queried resource.
    """
    api_version = doc.get("apiVersion") or spec.group_version
    group, _, version = api_version.rpartition("/")
    metadata = doc.get("metadata") or {}
    return {
        "kind": doc.get("kind") or spec.kind,
        "group": group,
        "version": version,
        "namespace": metadata.get("namespace") or "",
        "name": metadata.get("name") or "",
    }


def _gv(coords: Dict[str, str]) -> str:
    return f"{coords['group']}/{coords['version']}" if coords["group"] else coords["version"]


def describe(coords: Dict[str, str]) -> str:
    return f"{_gv(coords)}, Kind={coords['kind']} / {coords['namespace']} / {coords['name']}"


def resource_ref(coords: Dict[str, str]) -> str:
    return f"kube://{_gv(coords)}/{coords['kind']}/{coords['namespace']}/{coords['name']}"

# --- Field extraction -----------------------------------------------------

def extract_field(field: ExtractionRule, doc: Dict[str, Any]) -> Optional[Tuple[str, Any]]:
    """
    Evaluate one report field against a resource.

    Returns (key, value), or None when the query path does not resolve.
    """
    if field.kind.lower() != PROPERTY_KIND_JSONQUERY:
        raise UnsupportedRuleError(f"Unsupported kind value: '{field.kind}' for KubeResource")

    try:
        value, found = run_single_output(field.property, doc)
    except JSONQueryError as e:
        metadata = doc.get("metadata") or {}
        raise ExtractionError(
            f"Unable to report field: '{field.property}' for kubernetes object "
            f"'{doc.get('apiVersion', '')}, Kind={doc.get('kind', '')} / "
            f"{metadata.get('namespace', '')} / {metadata.get('name', '')}' - json query error: {e}"
        ) from e

    if not found:
        return None
    if field.has_value_override:
        value = field.value
    return field.output_key, value

# --- Check ----------------------------------------------------------------

class KubeApiserverCheck:
    """
    Compliance check reporting fields of Kubernetes resources.

    Built once from a rule's resource declaration; run() may be called again
    later but never concurrently on the same instance.
    """

    # Metadata keys added to every non-empty record
    KIND_KEY = "kube_resource_kind"
    GROUP_KEY = "kube_resource_group"
    VERSION_KEY = "kube_resource_version"
    NAMESPACE_KEY = "kube_resource_namespace"
    NAME_KEY = "kube_resource_name"

    def __init__(self, rule_id: str, spec: ResourceSpec, kube_client: ClusterClient,
                 reporter: Reporter, timeout: Optional[float] = DEFAULT_QUERY_TIMEOUT):
        self.rule_id = rule_id
        self.spec = spec
        self.kube_client = kube_client
        self.reporter = reporter
        self.timeout = timeout

    @classmethod
    def from_rule(cls, rule: Dict[str, Any], kube_client: ClusterClient, reporter: Reporter,
                  timeout: Optional[float] = DEFAULT_QUERY_TIMEOUT) -> "KubeApiserverCheck":
        """
        Build a check from a rule file entry: {"id": ..., "resource": {...}}.
        """
        if not isinstance(rule, dict):
            raise ConfigurationError(f"Cannot create kubeapiserver check, rule must be a mapping: {rule!r}")
        rule_id = str(rule.get("id") or "")
        spec = ResourceSpec.from_dict(rule.get("resource") or {}, rule_id=rule_id)
        return cls(rule_id, spec, kube_client, reporter, timeout=timeout)

    def run(self) -> int:
        """
        Query the API server and report each resource. Returns the number of records reported.
        """
        logger.debug("%s: kubeapiserver check: %s", self.rule_id, self.spec)
        resources = query_resources(self.kube_client, self.spec, rule_id=self.rule_id, timeout=self.timeout)
        logger.debug("%s: Got %d resources", self.rule_id, len(resources))

        reported = 0
        for doc in resources:
            if self.report_resource(doc):
                reported += 1
        return reported

    def build_record(self, doc: Dict[str, Any], coords: Dict[str, str]) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        for field in self.spec.report_fields:
            pair = extract_field(field, doc)
            if pair is None:
                continue
            key, value = pair
            record[key] = value

        if record:
            record[self.KIND_KEY] = coords["kind"]
            record[self.GROUP_KEY] = coords["group"]
            record[self.VERSION_KEY] = coords["version"]
            record[self.NAMESPACE_KEY] = coords["namespace"]
            record[self.NAME_KEY] = coords["name"]
        return record

    def report_resource(self, doc: Dict[str, Any]) -> bool:
        """
        Report one resource. Returns False when no field resolved (nothing reported).
        """
        coords = resource_coordinates(doc, self.spec)
        record = self.build_record(doc, coords)
        if not record:
            logger.debug("%s: no reportable fields for %s", self.rule_id, describe(coords))
            return False

        context = EvidenceContext(rule_id=self.rule_id, resource=resource_ref(coords))
        self.reporter.report(context, record)
        return True
