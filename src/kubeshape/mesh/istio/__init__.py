"""Istio service mesh builders."""

from kubeshape.mesh.istio.builder import IstioPolicyBuilder

__all__ = ["IstioPolicyBuilder"]
