"""Kubernetes API server checks."""
