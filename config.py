"""
Central configuration and tunable constants.

- Cluster settings can be overridden by CLI args or environment variables.
- Defaults for resource specs and reports are centralized for easy tuning.
"""

# Resource specs without an explicit version address the core "v1" API
DEFAULT_API_VERSION = "v1"

# Kubeconfig model:
# - None lets the kubernetes client resolve $KUBECONFIG / ~/.kube/config
# - None context means the kubeconfig's current-context
DEFAULT_KUBECONFIG = None
DEFAULT_KUBE_CONTEXT = None

# Deadline (seconds) for a single get/list call against the API server
DEFAULT_QUERY_TIMEOUT = 30

DEFAULT_REPORT_DIR = "reports"
