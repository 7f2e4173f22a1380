"""Kubernetes adapters - task runner, watch, resolver, report store and DI provider.

Import modules directly:
    from kscan.infrastructure.k8s.di import KubeProvider
    from kscan.infrastructure.k8s.runner import KubeTaskRunner
"""

__all__: list[str] = []
