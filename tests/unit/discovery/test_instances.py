import logging

import pytest

from k8s_discovery.config import KubernetesDiscoveryProperties, MetadataProperties
from k8s_discovery.instances import (
    build_instance,
    build_metadata,
    is_secure,
    select_primary_port,
)
from k8s_discovery.model import EndpointAddress, EndpointPort

HTTP = EndpointPort("http", 80)
HTTPS = EndpointPort("https", 443)
GRPC = EndpointPort("grpc", 9090)
ADMIN = EndpointPort("admin", 8081)


def test_single_port_is_always_selected() -> None:
    assert select_primary_port([GRPC]) is GRPC
    assert select_primary_port([GRPC], primary_port_name="http") is GRPC


def test_no_ports_selects_nothing() -> None:
    assert select_primary_port([]) is None


def test_primary_port_name_wins() -> None:
    assert select_primary_port([HTTP, HTTPS], primary_port_name="https") is HTTPS
    assert select_primary_port([HTTP, HTTPS, GRPC], primary_port_name="grpc") is GRPC


def test_primary_port_name_is_case_insensitive() -> None:
    assert select_primary_port([HTTP, GRPC], primary_port_name="GRPC") is GRPC


def test_unmatched_primary_port_name_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="k8s_discovery.instances"):
        port = select_primary_port([HTTP, GRPC], primary_port_name="metrics")

    assert port is HTTP
    assert "metrics" in caplog.text


def test_https_preferred_over_http() -> None:
    assert select_primary_port([GRPC, HTTP, HTTPS]) is HTTPS


def test_http_preferred_over_unnamed_ports() -> None:
    assert select_primary_port([GRPC, HTTP]) is HTTP


def test_first_port_used_when_ambiguous(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="k8s_discovery.instances"):
        port = select_primary_port([GRPC, ADMIN])

    assert port is GRPC
    assert "first" in caplog.text


def test_is_secure() -> None:
    assert is_secure(HTTPS)
    assert is_secure(EndpointPort(None, 443))
    assert is_secure(EndpointPort("HTTPS", 8443))
    assert not is_secure(HTTP)
    assert not is_secure(EndpointPort("web", 8443))
    assert is_secure(EndpointPort("web", 8443), known_secure_ports=(443, 8443))


def test_labels_are_prefixed() -> None:
    metadata = build_metadata(
        {"label": "value"}, {}, [HTTP], MetadataProperties(labels_prefix="label.")
    )
    assert metadata == {"label.label": "value"}


def test_empty_prefix_copies_keys_unchanged() -> None:
    metadata = build_metadata(
        {"app": "orders"},
        {"owner": "team-a"},
        [HTTP],
        MetadataProperties(labels_prefix="", annotations_prefix=""),
    )
    assert metadata == {"app": "orders", "owner": "team-a"}


def test_none_prefix_suppresses_category() -> None:
    metadata = build_metadata(
        {"app": "orders"},
        {"owner": "team-a"},
        [HTTP, HTTPS],
        MetadataProperties(labels_prefix=None, annotations_prefix="a.", ports_prefix=None),
    )
    assert metadata == {"a.owner": "team-a"}


def test_ports_only_added_when_several_ports() -> None:
    props = MetadataProperties(ports_prefix="port.")

    assert build_metadata({}, {}, [HTTP], props) == {}
    assert build_metadata({}, {}, [HTTP, HTTPS], props) == {
        "port.http": "80",
        "port.https": "443",
    }


def test_unnamed_port_uses_number_as_key() -> None:
    metadata = build_metadata(
        {}, {}, [HTTP, EndpointPort(None, 9000)], MetadataProperties(ports_prefix="")
    )
    assert metadata == {"http": "80", "9000": "9000"}


def test_missing_labels_and_annotations_default_to_empty() -> None:
    assert build_metadata(None, None, [HTTP], MetadataProperties()) == {}


def test_build_instance_uses_target_ref_uid() -> None:
    address = EndpointAddress(ip="10.0.0.7", target_ref_uid="uid1")
    properties = KubernetesDiscoveryProperties(
        primary_port_name="https",
        metadata=MetadataProperties(labels_prefix="label.", annotations_prefix="annotation."),
    )

    instance = build_instance(
        "orders",
        address,
        [HTTP, HTTPS],
        {"label": "value"},
        {"note": "x"},
        properties,
        namespace="shop",
    )

    assert instance is not None
    assert instance.service_id == "orders"
    assert instance.instance_id == "uid1"
    assert instance.namespace == "shop"
    assert instance.host == "10.0.0.7"
    assert instance.port == 443
    assert instance.secure is True
    assert instance.uri == "https://10.0.0.7:443"
    assert instance.metadata == {
        "label.label": "value",
        "annotation.note": "x",
        "port.http": "80",
        "port.https": "443",
    }


def test_build_instance_without_target_ref() -> None:
    instance = build_instance(
        "orders",
        EndpointAddress(ip="10.0.0.8"),
        [GRPC],
        None,
        None,
        KubernetesDiscoveryProperties(),
    )

    assert instance is not None
    assert instance.instance_id == "10.0.0.8:9090"
    assert instance.secure is False
    assert instance.scheme == "http"


def test_build_instance_without_ports_returns_none() -> None:
    instance = build_instance(
        "orders",
        EndpointAddress(ip="10.0.0.9"),
        [],
        {},
        {},
        KubernetesDiscoveryProperties(),
    )
    assert instance is None
