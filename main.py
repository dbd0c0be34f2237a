# main.py
"""
CLI entrypoint for the scanner.

- Supports two modes:
  * dummy: read Kubernetes resources from a JSON file (offline testing)
  * kube: run against a live API server using the kubernetes client
- Runs every kubeapiserver rule from a JSON rules file, one after another.
- Produces JSON, CSV, and HTML evidence reports and prints a colorful summary table.
"""

import argparse
import logging
import os
from typing import Any, Dict, List, Tuple

from config import DEFAULT_KUBECONFIG, DEFAULT_KUBE_CONTEXT, DEFAULT_QUERY_TIMEOUT, DEFAULT_REPORT_DIR
from models import Evidence
from scanner.errors import ScannerError
from scanner.kube_apiserver import KubeApiserverCheck
from scanner.kube_client import ClusterClient, DynamicClusterClient, FileClusterClient
from scanner.reporter import EvidenceCollector
from utils import load_json_file, save_report, print_summary_and_report_path

logger = logging.getLogger("kube_scanner")


def load_rules(path: str) -> List[Dict[str, Any]]:
    """
    Load rules from a JSON file: either a single rule object or {"rules": [...]}.
    """
    data = load_json_file(path)
    if isinstance(data, dict) and "rules" in data:
        return list(data["rules"])
    if isinstance(data, list):
        return data
    return [data]


def run_checks(rules: List[Dict[str, Any]], kube_client: ClusterClient,
               timeout: float = DEFAULT_QUERY_TIMEOUT) -> Tuple[List[Evidence], List[str]]:
    """
    Build and run one check per rule.

    A failing rule stops only itself: its error is recorded and the next rule runs.
    Evidence reported before the failure is kept.
    """
    collector = EvidenceCollector()
    errors: List[str] = []
    for rule in rules:
        rule_id = rule.get("id", "") if isinstance(rule, dict) else ""
        try:
            check = KubeApiserverCheck.from_rule(rule, kube_client, collector, timeout=timeout)
            reported = check.run()
            logger.info("%s: reported %d resources", rule_id, reported)
        except ScannerError as e:
            logger.error("%s: check failed: %s", rule_id, e)
            errors.append(f"{rule_id}: {e}")
    return collector.evidence, errors


def run_dummy(rules_path: str, file_path: str, report_dir: str = DEFAULT_REPORT_DIR,
              print_table: bool = False) -> List[str]:
    """
    Run the rules against resources loaded from a local JSON file.
    No cluster access is required in this mode.
    """
    logger.info("Running in dummy mode using file: %s", file_path)
    kube_client = FileClusterClient.from_file(file_path)
    evidence, errors = run_checks(load_rules(rules_path), kube_client)
    report_paths = save_report(
        evidence,
        mode="dummy",
        extra={"rules_file": rules_path, "source_file": file_path},
        errors=errors,
        out_dir=report_dir,
    )
    print_summary_and_report_path(
        evidence, report_paths, errors=errors, print_full_table=print_table
    )
    return errors


def run_kube(rules_path: str, kubeconfig: str = None, context: str = None,
             in_cluster: bool = False, timeout: float = None,
             report_dir: str = DEFAULT_REPORT_DIR, print_table: bool = False) -> List[str]:
    """
    Run the rules against a live Kubernetes API server.

    Cluster settings resolve CLI -> env -> config default.
    """
    kubeconfig = kubeconfig or os.environ.get("KUBECONFIG") or DEFAULT_KUBECONFIG
    context = context or os.environ.get("KUBE_CONTEXT") or DEFAULT_KUBE_CONTEXT
    if timeout is None:
        timeout = float(os.environ.get("KUBE_SCANNER_TIMEOUT") or DEFAULT_QUERY_TIMEOUT)

    logger.info("Running in live kube mode (context=%s, in_cluster=%s)", context or "<current>", in_cluster)

    kube_client = DynamicClusterClient(kubeconfig=kubeconfig, context=context, in_cluster=in_cluster)
    evidence, errors = run_checks(load_rules(rules_path), kube_client, timeout=timeout)
    report_paths = save_report(
        evidence,
        mode="kube",
        extra={"rules_file": rules_path, "context": context or "<current>"},
        errors=errors,
        out_dir=report_dir,
    )
    print_summary_and_report_path(
        evidence, report_paths, errors=errors, print_full_table=print_table
    )
    return errors


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Kubernetes API server evidence scanner."
    )
    p.add_argument(
        "--mode",
        choices=["dummy", "kube"],
        required=True,
        help="Run mode: dummy (JSON) or kube (live)",
    )
    p.add_argument(
        "--rules",
        required=True,
        help="Path to the JSON rules file",
    )
    p.add_argument(
        "--file",
        help="Path to dummy resources JSON file (required for dummy mode)",
    )
    p.add_argument(
        "--kubeconfig",
        help="Path to kubeconfig (optional, defaults to $KUBECONFIG or ~/.kube/config)",
    )
    p.add_argument(
        "--context",
        help="Kubeconfig context (optional, defaults to $KUBE_CONTEXT or current-context)",
    )
    p.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use the pod's service account instead of a kubeconfig",
    )
    p.add_argument(
        "--timeout",
        type=float,
        help="Deadline in seconds for each get/list query, API discovery included",
    )
    p.add_argument(
        "--report-dir",
        default=DEFAULT_REPORT_DIR,
        help="Directory to save reports (default: reports)",
    )
    p.add_argument(
        "--print-table",
        action="store_true",
        help="Print full evidence table to stdout",
    )
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    if args.mode == "dummy":
        if not args.file:
            raise SystemExit("dummy mode requires --file path to JSON")
        errors = run_dummy(
            args.rules,
            args.file,
            report_dir=args.report_dir,
            print_table=args.print_table,
        )
    else:
        errors = run_kube(
            args.rules,
            kubeconfig=args.kubeconfig,
            context=args.context,
            in_cluster=args.in_cluster,
            timeout=args.timeout,
            report_dir=args.report_dir,
            print_table=args.print_table,
        )
    if errors:
        raise SystemExit(f"{len(errors)} check(s) failed")


if __name__ == "__main__":
    main()
