"""Access policy models."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class InternalRule:
    """A peer application inside the cluster."""

    application: str
    namespace: str = ""  # Empty means the declaring application's namespace

    def resolve_namespace(self, default_namespace: str) -> str:
        """Get the namespace this rule points at."""
        return self.namespace or default_namespace

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InternalRule":
        return cls(application=data.get("application", ""), namespace=data.get("namespace", "") or "")


@dataclass(frozen=True)
class ExternalPort:
    """A port exposed by an external host."""

    name: str
    port: int
    protocol: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExternalPort":
        return cls(name=data.get("name", ""), port=int(data.get("port", 0)), protocol=data.get("protocol", ""))


@dataclass
class ExternalRule:
    """A destination outside the cluster."""

    host: str
    ports: list[ExternalPort] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExternalRule":
        return cls(
            host=data.get("host", ""),
            ports=[ExternalPort.from_dict(p) for p in data.get("ports") or []],
        )


@dataclass
class InboundPolicy:
    """Peers allowed to reach the application."""

    rules: list[InternalRule] = field(default_factory=list)


@dataclass
class OutboundPolicy:
    """Peers and external hosts the application may reach."""

    rules: list[InternalRule] = field(default_factory=list)
    external: list[ExternalRule] = field(default_factory=list)


@dataclass
class AccessPolicy:
    """Declared inbound and outbound access for an application."""

    inbound: InboundPolicy | None = None
    outbound: OutboundPolicy = field(default_factory=OutboundPolicy)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccessPolicy":
        """Parse the camelCase ``accessPolicy`` block of an Application."""
        inbound = None
        if data.get("inbound") is not None:
            inbound = InboundPolicy(
                rules=[InternalRule.from_dict(r) for r in data["inbound"].get("rules") or []],
            )

        outbound_data = data.get("outbound") or {}
        outbound = OutboundPolicy(
            rules=[InternalRule.from_dict(r) for r in outbound_data.get("rules") or []],
            external=[ExternalRule.from_dict(r) for r in outbound_data.get("external") or []],
        )

        return cls(inbound=inbound, outbound=outbound)

    def is_empty(self) -> bool:
        """Check if nothing is declared."""
        return not any(
            [
                self.inbound and self.inbound.rules,
                self.outbound.rules,
                self.outbound.external,
            ]
        )
