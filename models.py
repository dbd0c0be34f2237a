# models.py
"""
Data models used by the scanner.

- ResourceSpec describes which Kubernetes resources to query and which fields to report.
- Specs are frozen dataclasses: validated once when the check is built, never mutated.
- Evidence is what ends up in the reports, one per reported record.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from config import DEFAULT_API_VERSION
from scanner.errors import ConfigurationError


class Verb(str, Enum):
    GET = "get"
    LIST = "list"


@dataclass(frozen=True)
class ApiRequest:
    verb: Verb
    resource_name: str = ""


@dataclass(frozen=True)
class ExtractionRule:
    """
    One field to pull out of a matched resource.

    Fields:
    - kind: extraction kind tag; only "jsonquery" is understood (checked when evaluated)
    - property: query path into the resource (e.g. "spec.containers.0.image")
    - as_name: optional output key, defaults to property
    - value: optional literal that replaces whatever the query produced
    """
    kind: str
    property: str
    as_name: str = ""
    value: Optional[Any] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ExtractionRule":
        return cls(
            kind=str(raw.get("kind") or ""),
            property=str(raw.get("property") or ""),
            as_name=str(raw.get("as") or ""),
            value=raw.get("value"),
        )

    @property
    def output_key(self) -> str:
        return self.as_name or self.property

    @property
    def has_value_override(self) -> bool:
        return self.value is not None and self.value != ""


@dataclass(frozen=True)
class ResourceSpec:
    """
    Validated description of a Kubernetes resource query.

    Fields:
    - kind: resource type name as served by the API (e.g. "pods")
    - group: API group, empty for the core group
    - version: API version, "v1" when not configured
    - namespace: empty for cluster-scoped or all-namespaces queries
    - api_request: verb plus target name (name is only needed for "get")
    - report_fields: extraction rules, evaluated in order
    """
    kind: str
    api_request: ApiRequest
    group: str = ""
    version: str = DEFAULT_API_VERSION
    namespace: str = ""
    report_fields: Tuple[ExtractionRule, ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], rule_id: str = "") -> "ResourceSpec":
        """
        Build a ResourceSpec from a rule file's resource declaration.

        Raises ConfigurationError when kind or apiRequest.verb is empty,
        when the verb is neither "get" nor "list", or when the declaration
        does not have the expected shape.
        """
        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Cannot create kubeapiserver check, resource must be a mapping, rule: {rule_id}"
            )
        kind = str(raw.get("kind") or "")
        if not kind:
            raise ConfigurationError(
                f"Cannot create kubeapiserver check, resource kind is empty, rule: {rule_id}"
            )

        api_request = raw.get("apiRequest") or {}
        if not isinstance(api_request, dict):
            raise ConfigurationError(
                f"Cannot create kubeapiserver check, apiRequest must be a mapping, rule: {rule_id}"
            )
        verb_text = str(api_request.get("verb") or "").lower()
        if not verb_text:
            raise ConfigurationError(
                f"Cannot create kubeapiserver check, action verb is empty, rule: {rule_id}"
            )
        try:
            verb = Verb(verb_text)
        except ValueError:
            raise ConfigurationError(
                f"Cannot create kubeapiserver check, unsupported action verb: '{verb_text}', rule: {rule_id}"
            ) from None

        # "report" is the key used by compliance rule files
        fields = raw.get("reportFields")
        if fields is None:
            fields = raw.get("report") or []
        if not isinstance(fields, list) or not all(isinstance(f, dict) for f in fields):
            raise ConfigurationError(
                f"Cannot create kubeapiserver check, report fields must be a list of mappings, rule: {rule_id}"
            )

        return cls(
            kind=kind,
            group=str(raw.get("group") or ""),
            version=str(raw.get("version") or "") or DEFAULT_API_VERSION,
            namespace=str(raw.get("namespace") or ""),
            api_request=ApiRequest(
                verb=verb,
                resource_name=str(api_request.get("resourceName") or ""),
            ),
            report_fields=tuple(ExtractionRule.from_dict(f) for f in fields),
        )

    @property
    def group_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


@dataclass(frozen=True)
class EvidenceContext:
    """
    Identifies where a reported record comes from.

    - rule_id: compliance rule that produced the record
    - resource: "kube://<group/version>/<kind>/<namespace>/<name>" reference
    """
    rule_id: str
    resource: str


@dataclass
class Evidence:
    """
    A single reported key-value record, ready for the report writers.
    """
    rule_id: str
    resource: str
    data: Dict[str, Any] = field(default_factory=dict)
