"""Kubernetes cluster access."""

from kubeshape.k8s.client import K8sClient, translate_api_exception

__all__ = ["K8sClient", "translate_api_exception"]
