"""
Reactive discovery client backed by Kubernetes Services and Endpoints.

Both queries are exposed as async generators. Nothing is fetched until the
consumer pulls the first element, each fetch returns a whole resource list
that is then expanded one instance at a time, and closing the generator
early stops any remaining fetches.
"""

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Callable, Iterable, Mapping
from typing import Any, TypeVar

from .config import KubernetesDiscoveryProperties
from .exceptions import KubernetesFetchError
from .fetcher import ResourceFetcher, ServiceLister, select_service_lister
from .instances import build_instance
from .model import (
    EMPTY_SERVICE_METADATA,
    EndpointAddress,
    EndpointResource,
    EndpointSubset,
    ServiceInstance,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReactiveDiscoveryClient(ABC):
    """Discovery client whose queries produce async streams."""

    DEFAULT_ORDER = 0

    @abstractmethod
    def description(self) -> str:
        """Human readable description of the implementation."""

    def get_order(self) -> int:
        return self.DEFAULT_ORDER

    @abstractmethod
    def get_services(self) -> AsyncGenerator[str, None]:
        """Stream the names of all known services."""

    @abstractmethod
    def get_instances(self, service_id: str) -> AsyncGenerator[ServiceInstance, None]:
        """Stream the instances of one service."""


class KubernetesReactiveDiscoveryClient(ReactiveDiscoveryClient):
    """Discovery client translating Endpoints into service instances."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        properties: KubernetesDiscoveryProperties | None = None,
        service_lister: ServiceLister | None = None,
    ):
        self.fetcher = fetcher
        self.properties = properties or KubernetesDiscoveryProperties()
        self._service_lister = service_lister or select_service_lister(
            self.properties
        )

    def description(self) -> str:
        return "Kubernetes Reactive Discovery Client"

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking fetcher call without stalling the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def get_services(self) -> AsyncGenerator[str, None]:
        services = await self._call(self._service_lister, self.fetcher)
        logger.debug("Fetched %d services", len(services))

        for service in services:
            yield service.name

    async def get_instances(
        self, service_id: str
    ) -> AsyncGenerator[ServiceInstance, None]:
        endpoint_resources = await self._fetch_endpoint_resources(service_id)
        if not endpoint_resources:
            logger.debug("No endpoints found for service %s", service_id)

        for endpoints in endpoint_resources:
            if not endpoints.subsets:
                logger.debug(
                    "Endpoints %s/%s have no subsets",
                    endpoints.namespace,
                    endpoints.name,
                )
                continue

            namespace = endpoints.namespace or self.properties.namespace
            labels, annotations = await self._fetch_service_metadata(
                namespace, service_id
            )

            for subset in endpoints.subsets:
                for address in self._subset_addresses(subset):
                    instance = build_instance(
                        service_id,
                        address,
                        subset.ports,
                        labels,
                        annotations,
                        self.properties,
                        namespace=namespace,
                    )
                    if instance is not None:
                        yield instance

    async def _fetch_endpoint_resources(
        self, service_id: str
    ) -> list[EndpointResource]:
        if self.properties.all_namespaces:
            return await self._call(
                self.fetcher.fetch_endpoints_all_namespaces, service_id
            )

        endpoints = await self._call(
            self.fetcher.fetch_endpoints, self.properties.namespace, service_id
        )
        return [endpoints] if endpoints is not None else []

    async def _fetch_service_metadata(
        self, namespace: str, service_id: str
    ) -> tuple[Mapping[str, str], Mapping[str, str]]:
        """Labels and annotations of the owning service.

        A failed or empty lookup yields empty metadata; the instances are still
        produced.
        """
        try:
            service = await self._call(
                self.fetcher.fetch_service, namespace, service_id
            )
        except KubernetesFetchError as e:
            logger.warning(
                "Could not read service %s/%s, continuing without its metadata: %s",
                namespace,
                service_id,
                e,
            )
            return EMPTY_SERVICE_METADATA, EMPTY_SERVICE_METADATA

        if service is None:
            logger.debug(
                "Service %s/%s not found, continuing without its metadata",
                namespace,
                service_id,
            )
            return EMPTY_SERVICE_METADATA, EMPTY_SERVICE_METADATA

        return service.labels, service.annotations

    def _subset_addresses(self, subset: EndpointSubset) -> Iterable[EndpointAddress]:
        yield from subset.addresses
        if self.properties.include_not_ready_addresses:
            yield from subset.not_ready_addresses
