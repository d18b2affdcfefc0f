"""
Data model shared by the fetcher, the instance builder and the client.

Kubernetes objects are converted into these plain, immutable records at the
fetcher boundary so the translation logic never touches the API client types.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


def _frozen(mapping: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class EndpointPort:
    """A port exposed by every address of an endpoint subset."""

    name: str | None
    port: int
    protocol: str = "TCP"


@dataclass(frozen=True)
class EndpointAddress:
    """A single backend address inside an endpoint subset."""

    ip: str
    target_ref_uid: str | None = None
    target_ref_kind: str | None = None
    target_ref_name: str | None = None
    hostname: str | None = None
    node_name: str | None = None


@dataclass(frozen=True)
class EndpointSubset:
    """Addresses sharing the same set of ports."""

    addresses: tuple[EndpointAddress, ...] = ()
    not_ready_addresses: tuple[EndpointAddress, ...] = ()
    ports: tuple[EndpointPort, ...] = ()


@dataclass(frozen=True)
class EndpointResource:
    """An Endpoints object; namespace comes from its own metadata."""

    name: str
    namespace: str | None = None
    subsets: tuple[EndpointSubset, ...] = ()


@dataclass(frozen=True)
class ServiceSummary:
    """The parts of a Service object discovery cares about."""

    name: str
    namespace: str | None = None
    labels: Mapping[str, str] = field(default_factory=dict)
    annotations: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _frozen(self.labels))
        object.__setattr__(self, "annotations", _frozen(self.annotations))

    def __hash__(self) -> int:
        return hash(
            (
                self.name,
                self.namespace,
                frozenset(self.labels.items()),
                frozenset(self.annotations.items()),
            )
        )


EMPTY_SERVICE_METADATA: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True)
class ServiceInstance:
    """A discovered instance of a service."""

    service_id: str
    host: str
    port: int
    secure: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)
    instance_id: str | None = None
    namespace: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _frozen(self.metadata))

    def __hash__(self) -> int:
        return hash(
            (
                self.service_id,
                self.host,
                self.port,
                self.secure,
                frozenset(self.metadata.items()),
                self.instance_id,
                self.namespace,
            )
        )

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def uri(self) -> str:
        """Get full URI for the instance."""
        return f"{self.scheme}://{self.host}:{self.port}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "instance_id": self.instance_id,
            "namespace": self.namespace,
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "uri": self.uri,
            "metadata": dict(self.metadata),
        }

    def __str__(self) -> str:
        return self.uri
