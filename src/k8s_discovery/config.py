"""
Configuration for Kubernetes discovery.

Two layers live here:

- ``KubernetesDiscoveryProperties`` / ``MetadataProperties``: immutable
  dataclasses handed to the discovery client. They are resolved once and
  never re-read per call.
- ``DiscoverySettings``: a pydantic-settings model that loads the same knobs
  from environment variables or a YAML file, validates them and resolves them
  into the immutable properties.

Metadata prefixes are tri-state: ``""`` copies keys unchanged, any other
string is prepended to each key, and ``None`` drops the category entirely.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_NAMESPACE = "default"
DEFAULT_PORTS_PREFIX = "port."
DEFAULT_SECURE_PORTS = (443,)


@dataclass(frozen=True)
class MetadataProperties:
    """How service labels, annotations and ports are copied into metadata."""

    labels_prefix: str | None = ""
    annotations_prefix: str | None = ""
    ports_prefix: str | None = DEFAULT_PORTS_PREFIX

    @property
    def add_labels(self) -> bool:
        return self.labels_prefix is not None

    @property
    def add_annotations(self) -> bool:
        return self.annotations_prefix is not None

    @property
    def add_ports(self) -> bool:
        return self.ports_prefix is not None


@dataclass(frozen=True)
class KubernetesDiscoveryProperties:
    """Resolved discovery configuration."""

    # Scope
    namespace: str = DEFAULT_NAMESPACE
    all_namespaces: bool = False

    # Service listing
    service_labels: Mapping[str, str] = field(default_factory=dict)

    # Instance translation
    primary_port_name: str | None = None
    include_not_ready_addresses: bool = False
    known_secure_ports: tuple[int, ...] = DEFAULT_SECURE_PORTS
    metadata: MetadataProperties = field(default_factory=MetadataProperties)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "service_labels", MappingProxyType(dict(self.service_labels))
        )
        object.__setattr__(
            self, "known_secure_ports", tuple(self.known_secure_ports)
        )

    def __hash__(self) -> int:
        return hash(
            (
                self.namespace,
                self.all_namespaces,
                frozenset(self.service_labels.items()),
                self.primary_port_name,
                self.include_not_ready_addresses,
                self.known_secure_ports,
                self.metadata,
            )
        )


class MetadataSettings(BaseModel):
    """Metadata prefix settings."""

    labels_prefix: str | None = Field(default="", description="Prefix for label keys")
    annotations_prefix: str | None = Field(
        default="", description="Prefix for annotation keys"
    )
    ports_prefix: str | None = Field(
        default=DEFAULT_PORTS_PREFIX, description="Prefix for port name keys"
    )


class DiscoverySettings(BaseSettings):
    """Discovery settings loaded from the environment or a YAML file."""

    model_config = SettingsConfigDict(
        env_prefix="KUBERNETES_DISCOVERY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Namespace to query")
    all_namespaces: bool = Field(
        default=False, description="Query every namespace instead of one"
    )
    primary_port_name: str | None = Field(
        default=None, description="Port name used when several ports are exposed"
    )
    service_labels: dict[str, str] = Field(
        default_factory=dict, description="Label selector for service listing"
    )
    include_not_ready_addresses: bool = Field(
        default=False, description="Also return addresses that are not ready"
    )
    known_secure_ports: list[int] = Field(
        default_factory=lambda: list(DEFAULT_SECURE_PORTS),
        description="Port numbers treated as secure",
    )
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("namespace must not be empty")
        return v.strip()

    @field_validator("known_secure_ports")
    @classmethod
    def validate_known_secure_ports(cls, v: list[int]) -> list[int]:
        for port in v:
            if port <= 0 or port > 65535:
                raise ValueError(f"Invalid port number: {port}")
        return v

    @field_validator("primary_port_name")
    @classmethod
    def blank_primary_port_name_is_unset(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def from_yaml(cls, file_path: str | Path) -> "DiscoverySettings":
        """Load settings from a YAML file.

        The file may either hold the settings at the top level or nest them
        under a ``discovery`` key.
        """
        try:
            with open(file_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {file_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping: {file_path}"
            )
        data = data.get("discovery", data)

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")

    @classmethod
    def from_env(cls) -> "DiscoverySettings":
        """Load settings from ``KUBERNETES_DISCOVERY_*`` environment variables."""
        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(
                f"Environment configuration validation failed: {e}"
            )

    def to_properties(self) -> KubernetesDiscoveryProperties:
        """Resolve into the immutable properties used by the client."""
        return KubernetesDiscoveryProperties(
            namespace=self.namespace,
            all_namespaces=self.all_namespaces,
            service_labels=dict(self.service_labels),
            primary_port_name=self.primary_port_name,
            include_not_ready_addresses=self.include_not_ready_addresses,
            known_secure_ports=tuple(self.known_secure_ports),
            metadata=MetadataProperties(
                labels_prefix=self.metadata.labels_prefix,
                annotations_prefix=self.metadata.annotations_prefix,
                ports_prefix=self.metadata.ports_prefix,
            ),
        )
