"""
Global pytest configuration and fixtures for discovery testing.

The FakeResourceFetcher stands in for the cluster: tests seed it with
services and endpoints and then assert on the calls the client made.
"""

from collections.abc import Mapping

import pytest

from k8s_discovery.exceptions import KubernetesFetchError
from k8s_discovery.fetcher import ResourceFetcher
from k8s_discovery.model import (
    EndpointAddress,
    EndpointPort,
    EndpointResource,
    EndpointSubset,
    ServiceSummary,
)


class FakeResourceFetcher(ResourceFetcher):
    """In-memory ResourceFetcher recording every call."""

    def __init__(self):
        self.services: list[ServiceSummary] = []
        # (service name the field selector matches, Endpoints object)
        self.endpoints: list[tuple[str, EndpointResource]] = []
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple] = []

    def add_service(
        self,
        name: str,
        namespace: str = "test",
        labels: Mapping[str, str] | None = None,
        annotations: Mapping[str, str] | None = None,
    ) -> ServiceSummary:
        service = ServiceSummary(
            name=name,
            namespace=namespace,
            labels=labels or {},
            annotations=annotations or {},
        )
        self.services.append(service)
        return service

    def add_endpoints(
        self, endpoints: EndpointResource, service_name: str | None = None
    ) -> EndpointResource:
        """Register endpoints returned when ``service_name`` is queried.

        Defaults to the Endpoints object's own name. Matching happens here, the
        way the API server applies the field selector; the client never sees
        the objects of other services.
        """
        self.endpoints.append((service_name or endpoints.name, endpoints))
        return endpoints

    def fail(self, method: str, error: Exception | None = None) -> None:
        self.errors[method] = error or KubernetesFetchError(
            "Internal error", status=500, reason="Internal Server Error"
        )

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self.errors:
            raise self.errors[method]

    def fetch_services(self, namespace, label_selector=None):
        self._record("fetch_services", namespace, dict(label_selector or {}))
        return [
            s
            for s in self.services
            if (namespace is None or s.namespace == namespace)
            and all(s.labels.get(k) == v for k, v in (label_selector or {}).items())
        ]

    def fetch_endpoints(self, namespace, name):
        self._record("fetch_endpoints", namespace, name)
        for service_name, endpoints in self.endpoints:
            if endpoints.namespace == namespace and service_name == name:
                return endpoints
        return None

    def fetch_endpoints_all_namespaces(self, name):
        self._record("fetch_endpoints_all_namespaces", name)
        return [e for service_name, e in self.endpoints if service_name == name]

    def fetch_service(self, namespace, name):
        self._record("fetch_service", namespace, name)
        for service in self.services:
            if service.namespace == namespace and service.name == name:
                return service
        return None


def make_endpoints(
    name: str,
    namespace: str = "test",
    ips: tuple[str, ...] = ("10.0.0.1",),
    ports: tuple[EndpointPort, ...] = (EndpointPort("http", 80),),
    not_ready_ips: tuple[str, ...] = (),
) -> EndpointResource:
    """Endpoints with a single subset."""
    subset = EndpointSubset(
        addresses=tuple(
            EndpointAddress(ip=ip, target_ref_uid=f"uid-{ip}") for ip in ips
        ),
        not_ready_addresses=tuple(EndpointAddress(ip=ip) for ip in not_ready_ips),
        ports=ports,
    )
    return EndpointResource(name=name, namespace=namespace, subsets=(subset,))


@pytest.fixture
def fetcher() -> FakeResourceFetcher:
    """Provide an empty fake cluster."""
    return FakeResourceFetcher()
