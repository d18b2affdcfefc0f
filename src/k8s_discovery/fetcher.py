"""
Read-only access to Services and Endpoints.

ResourceFetcher is the contract the discovery client consumes. The
KubernetesResourceFetcher implementation wraps the official ``kubernetes``
client's CoreV1Api and converts its model objects into the plain records
from ``k8s_discovery.model``. Connection handling, authentication and retries
belong to the API client, not to this module.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from .config import KubernetesDiscoveryProperties
from .exceptions import ConfigurationError, KubernetesFetchError
from .model import (
    EndpointAddress,
    EndpointPort,
    EndpointResource,
    EndpointSubset,
    ServiceSummary,
)

logger = logging.getLogger(__name__)


class ResourceFetcher(ABC):
    """Synchronous reads of Service and Endpoints resources."""

    @abstractmethod
    def fetch_services(
        self,
        namespace: str | None,
        label_selector: Mapping[str, str] | None = None,
    ) -> list[ServiceSummary]:
        """List services in one namespace, or in all of them when namespace is None."""

    @abstractmethod
    def fetch_endpoints(self, namespace: str, name: str) -> EndpointResource | None:
        """Read one Endpoints object, None if it does not exist."""

    @abstractmethod
    def fetch_endpoints_all_namespaces(self, name: str) -> list[EndpointResource]:
        """List Endpoints objects with the given name across the cluster."""

    @abstractmethod
    def fetch_service(self, namespace: str, name: str) -> ServiceSummary | None:
        """Read one Service, None if it does not exist."""


def format_label_selector(labels: Mapping[str, str] | None) -> str | None:
    """Render a label mapping as a Kubernetes equality label selector."""
    if not labels:
        return None
    return ",".join(f"{key}={value}" for key, value in labels.items())


def _service_from_k8s(service: Any) -> ServiceSummary:
    metadata = service.metadata
    return ServiceSummary(
        name=metadata.name,
        namespace=metadata.namespace,
        labels=metadata.labels or {},
        annotations=metadata.annotations or {},
    )


def _address_from_k8s(address: Any) -> EndpointAddress:
    target_ref = address.target_ref
    return EndpointAddress(
        ip=address.ip,
        target_ref_uid=target_ref.uid if target_ref else None,
        target_ref_kind=target_ref.kind if target_ref else None,
        target_ref_name=target_ref.name if target_ref else None,
        hostname=address.hostname,
        node_name=address.node_name,
    )


def _endpoints_from_k8s(endpoints: Any) -> EndpointResource:
    subsets = []
    for subset in endpoints.subsets or []:
        subsets.append(
            EndpointSubset(
                addresses=tuple(
                    _address_from_k8s(a) for a in subset.addresses or []
                ),
                not_ready_addresses=tuple(
                    _address_from_k8s(a) for a in subset.not_ready_addresses or []
                ),
                ports=tuple(
                    EndpointPort(name=p.name, port=p.port, protocol=p.protocol or "TCP")
                    for p in subset.ports or []
                ),
            )
        )

    return EndpointResource(
        name=endpoints.metadata.name,
        namespace=endpoints.metadata.namespace,
        subsets=tuple(subsets),
    )


@contextmanager
def _api_errors(action: str) -> Iterator[None]:
    """Wrap API and transport failures in KubernetesFetchError."""
    try:
        yield
    except ApiException as e:
        raise KubernetesFetchError(
            f"Failed to {action}: {e.status} {e.reason}",
            status=e.status,
            reason=e.reason,
        ) from e
    except HTTPError as e:
        raise KubernetesFetchError(f"Failed to {action}: {e}") from e


class KubernetesResourceFetcher(ResourceFetcher):
    """ResourceFetcher backed by ``kubernetes.client.CoreV1Api``."""

    def __init__(self, core_v1: client.CoreV1Api):
        self._core_v1 = core_v1

    def fetch_services(
        self,
        namespace: str | None,
        label_selector: Mapping[str, str] | None = None,
    ) -> list[ServiceSummary]:
        kwargs = {}
        selector = format_label_selector(label_selector)
        if selector:
            kwargs["label_selector"] = selector

        if namespace is None:
            with _api_errors("list services in all namespaces"):
                services = self._core_v1.list_service_for_all_namespaces(**kwargs)
        else:
            with _api_errors(f"list services in namespace {namespace}"):
                services = self._core_v1.list_namespaced_service(
                    namespace=namespace, **kwargs
                )

        return [_service_from_k8s(service) for service in services.items or []]

    def fetch_endpoints(self, namespace: str, name: str) -> EndpointResource | None:
        try:
            with _api_errors(f"read endpoints {namespace}/{name}"):
                endpoints = self._core_v1.read_namespaced_endpoints(
                    name=name, namespace=namespace
                )
        except KubernetesFetchError as e:
            if e.status == 404:
                logger.debug("Endpoints %s/%s not found", namespace, name)
                return None
            raise

        return _endpoints_from_k8s(endpoints)

    def fetch_endpoints_all_namespaces(self, name: str) -> list[EndpointResource]:
        with _api_errors(f"list endpoints named {name}"):
            endpoints = self._core_v1.list_endpoints_for_all_namespaces(
                field_selector=f"metadata.name={name}"
            )

        return [_endpoints_from_k8s(item) for item in endpoints.items or []]

    def fetch_service(self, namespace: str, name: str) -> ServiceSummary | None:
        try:
            with _api_errors(f"read service {namespace}/{name}"):
                service = self._core_v1.read_namespaced_service(
                    name=name, namespace=namespace
                )
        except KubernetesFetchError as e:
            if e.status == 404:
                logger.debug("Service %s/%s not found", namespace, name)
                return None
            raise

        return _service_from_k8s(service)


def create_core_v1_api(
    in_cluster: bool = False,
    config_file: str | None = None,
    context: str | None = None,
) -> client.CoreV1Api:
    """Load cluster credentials and return a CoreV1Api.

    Missing or invalid credentials raise ``ConfigurationError``.
    """
    try:
        if in_cluster:
            k8s_config.load_incluster_config()
        else:
            k8s_config.load_kube_config(config_file=config_file, context=context)
    except ConfigException as e:
        raise ConfigurationError(
            f"Failed to load Kubernetes configuration: {e}"
        ) from e

    return client.CoreV1Api()


ServiceLister = Callable[[ResourceFetcher], list[ServiceSummary]]


def namespaced_service_lister(
    namespace: str, label_selector: Mapping[str, str] | None = None
) -> ServiceLister:
    """List the services of a single namespace."""

    def list_services(fetcher: ResourceFetcher) -> list[ServiceSummary]:
        return fetcher.fetch_services(namespace, label_selector)

    return list_services


def all_namespaces_service_lister(
    label_selector: Mapping[str, str] | None = None,
) -> ServiceLister:
    """List services across every namespace."""

    def list_services(fetcher: ResourceFetcher) -> list[ServiceSummary]:
        return fetcher.fetch_services(None, label_selector)

    return list_services


def select_service_lister(properties: KubernetesDiscoveryProperties) -> ServiceLister:
    if properties.all_namespaces:
        return all_namespaces_service_lister(properties.service_labels)
    return namespaced_service_lister(properties.namespace, properties.service_labels)
