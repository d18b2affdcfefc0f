"""
Kubernetes Reactive Service Discovery

Translates Kubernetes Services and Endpoints into service instances for
discovery consumers. Queries are exposed as async generators that only talk
to the cluster when consumed.

Usage:
    from k8s_discovery import (
        KubernetesDiscoveryProperties,
        KubernetesReactiveDiscoveryClient,
        KubernetesResourceFetcher,
        create_core_v1_api,
    )

    fetcher = KubernetesResourceFetcher(create_core_v1_api())
    client = KubernetesReactiveDiscoveryClient(
        fetcher, KubernetesDiscoveryProperties(namespace="shop")
    )

    async for instance in client.get_instances("orders"):
        print(instance.uri, instance.metadata)
"""

from .client import KubernetesReactiveDiscoveryClient, ReactiveDiscoveryClient
from .config import DiscoverySettings, KubernetesDiscoveryProperties, MetadataProperties
from .exceptions import ConfigurationError, DiscoveryError, KubernetesFetchError
from .fetcher import (
    KubernetesResourceFetcher,
    ResourceFetcher,
    ServiceLister,
    all_namespaces_service_lister,
    create_core_v1_api,
    namespaced_service_lister,
    select_service_lister,
)
from .instances import build_instance, build_metadata, is_secure, select_primary_port
from .model import (
    EndpointAddress,
    EndpointPort,
    EndpointResource,
    EndpointSubset,
    ServiceInstance,
    ServiceSummary,
)

__version__ = "1.0.0"

__all__ = [
    # Client
    "ReactiveDiscoveryClient",
    "KubernetesReactiveDiscoveryClient",
    # Configuration
    "KubernetesDiscoveryProperties",
    "MetadataProperties",
    "DiscoverySettings",
    # Fetching
    "ResourceFetcher",
    "KubernetesResourceFetcher",
    "ServiceLister",
    "namespaced_service_lister",
    "all_namespaces_service_lister",
    "select_service_lister",
    "create_core_v1_api",
    # Instance building
    "build_instance",
    "build_metadata",
    "is_secure",
    "select_primary_port",
    # Model
    "EndpointAddress",
    "EndpointPort",
    "EndpointResource",
    "EndpointSubset",
    "ServiceInstance",
    "ServiceSummary",
    # Errors
    "DiscoveryError",
    "ConfigurationError",
    "KubernetesFetchError",
]
