"""
Translation of endpoint addresses into service instances.

Everything here is a pure function of its arguments: the client hands in one
address, the ports of its subset and the owning service's metadata, and gets
back at most one ServiceInstance.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from .config import KubernetesDiscoveryProperties, MetadataProperties
from .model import EndpointAddress, EndpointPort, ServiceInstance

logger = logging.getLogger(__name__)

HTTPS_PORT_NAME = "https"
HTTP_PORT_NAME = "http"


def _find_port(ports: Sequence[EndpointPort], name: str) -> EndpointPort | None:
    wanted = name.lower()
    for port in ports:
        if port.name and port.name.lower() == wanted:
            return port
    return None


def select_primary_port(
    ports: Sequence[EndpointPort], primary_port_name: str | None = None
) -> EndpointPort | None:
    """Pick the port that represents an address.

    A single port is always used as is. With several ports the configured
    primary port name wins, then a port named ``https``, then ``http``, and
    finally the first port.
    """
    if not ports:
        return None

    if len(ports) == 1:
        return ports[0]

    if primary_port_name:
        port = _find_port(ports, primary_port_name)
        if port is not None:
            return port
        logger.warning(
            "Primary port name '%s' matched none of the ports %s, falling back",
            primary_port_name,
            [p.name for p in ports],
        )

    for name in (HTTPS_PORT_NAME, HTTP_PORT_NAME):
        port = _find_port(ports, name)
        if port is not None:
            return port

    logger.warning(
        "Could not choose a primary port among %s, using the first one (%s)",
        [p.name for p in ports],
        ports[0].port,
    )
    return ports[0]


def is_secure(port: EndpointPort, known_secure_ports: Iterable[int] = (443,)) -> bool:
    """Check whether a port should be reached over a secure scheme."""
    if port.port in tuple(known_secure_ports):
        return True
    return bool(port.name) and port.name.lower() == HTTPS_PORT_NAME


def _prefixed(values: Mapping[str, str], prefix: str) -> dict[str, str]:
    return {f"{prefix}{key}": value for key, value in values.items()}


def build_metadata(
    labels: Mapping[str, str] | None,
    annotations: Mapping[str, str] | None,
    ports: Sequence[EndpointPort],
    metadata_properties: MetadataProperties,
) -> dict[str, str]:
    """Merge service labels, annotations and port numbers into one mapping.

    Port entries are only emitted when there is more than one port, so that
    the numbers of the non-selected ports stay recoverable.
    """
    metadata: dict[str, str] = {}

    if metadata_properties.add_labels:
        metadata.update(_prefixed(labels or {}, metadata_properties.labels_prefix))

    if metadata_properties.add_annotations:
        metadata.update(
            _prefixed(annotations or {}, metadata_properties.annotations_prefix)
        )

    if metadata_properties.add_ports and len(ports) > 1:
        for port in ports:
            key = port.name or str(port.port)
            metadata[f"{metadata_properties.ports_prefix}{key}"] = str(port.port)

    return metadata


def build_instance(
    service_name: str,
    address: EndpointAddress,
    ports: Sequence[EndpointPort],
    labels: Mapping[str, str] | None,
    annotations: Mapping[str, str] | None,
    properties: KubernetesDiscoveryProperties,
    namespace: str | None = None,
) -> ServiceInstance | None:
    """Build the instance for one endpoint address.

    Returns None when the subset exposes no ports, since there is nothing to
    connect to.
    """
    port = select_primary_port(ports, properties.primary_port_name)
    if port is None:
        logger.debug(
            "Skipping address %s of service %s: subset exposes no ports",
            address.ip,
            service_name,
        )
        return None

    instance_id = address.target_ref_uid or f"{address.ip}:{port.port}"

    return ServiceInstance(
        service_id=service_name,
        host=address.ip,
        port=port.port,
        secure=is_secure(port, properties.known_secure_ports),
        metadata=build_metadata(labels, annotations, ports, properties.metadata),
        instance_id=instance_id,
        namespace=namespace,
    )
