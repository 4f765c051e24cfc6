"""
Object store backends for netclaim.

Provides:
- ObjectStore protocol (get / list / create / conditional patch)
- In-memory store for tests and offline fixture runs
- Kubernetes store over CustomObjectsApi
- JSON merge patch helpers
"""

from netclaim.store.base import ObjectStore, label_selector, labels_match
from netclaim.store.kube import KubernetesObjectStore, load_kube_config
from netclaim.store.memory import InMemoryObjectStore
from netclaim.store.patch import apply_merge_patch, create_merge_patch

__all__ = [
    # Interface
    "ObjectStore",
    "labels_match",
    "label_selector",
    # Backends
    "InMemoryObjectStore",
    "KubernetesObjectStore",
    "load_kube_config",
    # Patch helpers
    "create_merge_patch",
    "apply_merge_patch",
]
