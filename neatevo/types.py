"""Core value types shared by genomes, species and phenomes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar

_U32_MAX = 0xFFFF_FFFF
_UNSIGNED = re.compile(r"\+?[0-9]+")


class NodeKind(Enum):
    """Role of a node inside a genome."""

    SENSOR = "Sensor"
    HIDDEN = "Hidden"
    OUTPUT = "Output"


class ParentFitness(Enum):
    """Which crossover parent is fitter."""

    LEFT = "Left"
    RIGHT = "Right"
    EQUAL = "Equal"


def _parse_u32(text: str, what: str) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise ValueError(f"invalid {what}: {text!r} is not an unsigned integer")
    value = int(text)
    if value > _U32_MAX:
        raise ValueError(f"invalid {what}: {value} is out of range")
    return value


@dataclass(frozen=True)
class ConnectionKey:
    """Structural identity of a connection: source and destination node."""

    in_node: int
    out_node: int

    def __str__(self) -> str:
        return f"{self.in_node}:{self.out_node}"

    @classmethod
    def parse(cls, text: str) -> ConnectionKey:
        """Parse the ``in:out`` form produced by ``str()``."""
        parts = text.split(":")
        if len(parts) != 2:
            raise ValueError(f"expected 'in:out', got {text!r}")
        return cls(_parse_u32(parts[0], "in_node"), _parse_u32(parts[1], "out_node"))

    def to_dict(self) -> dict[str, int]:
        return {"in_node": self.in_node, "out_node": self.out_node}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectionKey:
        return cls(int(data["in_node"]), int(data["out_node"]))


@dataclass
class ConnectionGene:
    """A weighted, possibly disabled connection with its innovation number."""

    key: ConnectionKey
    innovation: int
    weight: float
    enabled: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key.to_dict(),
            "innovation": self.innovation,
            "weight": self.weight,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectionGene:
        return cls(
            key=ConnectionKey.from_dict(data["key"]),
            innovation=int(data["innovation"]),
            weight=float(data["weight"]),
            enabled=bool(data["enabled"]),
        )


@dataclass(frozen=True)
class DistanceCoefficients:
    """Weights of the terms in the genetic distance measure."""

    excess: float = 1.0
    disjoint: float = 1.0
    weight: float = 0.4
    small_genome_threshold: int = 20

    def to_dict(self) -> dict[str, Any]:
        return {
            "excess": self.excess,
            "disjoint": self.disjoint,
            "weight": self.weight,
            "small_genome_threshold": self.small_genome_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DistanceCoefficients:
        return cls(
            excess=float(data["excess"]),
            disjoint=float(data["disjoint"]),
            weight=float(data["weight"]),
            small_genome_threshold=int(data["small_genome_threshold"]),
        )


def _encode(value: Any) -> Any:
    if isinstance(value, NodeKind):
        return value.value
    if isinstance(value, ConnectionKey):
        return value.to_dict()
    return value


class GenomeError(Exception):
    """Base class of every error raised while editing or combining genomes."""

    _variants: ClassVar[dict[str, type[GenomeError]]] = {}
    _schema: ClassVar[tuple[tuple[str, Callable[[Any], Any]], ...]] = ()
    _newtype: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        GenomeError._variants[cls.__name__] = cls

    def _values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name) for name, _ in self._schema)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenomeError):
            return NotImplemented
        return type(self) is type(other) and self._values() == other._values()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._values()))

    def to_dict(self) -> dict[str, Any]:
        """Encode as a single-entry mapping from variant name to payload."""
        encoded = {name: _encode(getattr(self, name)) for name, _ in self._schema}
        payload = next(iter(encoded.values())) if self._newtype else encoded
        return {type(self).__name__: payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenomeError:
        if len(data) != 1:
            raise ValueError("a genome error is encoded as exactly one variant entry")
        ((name, payload),) = data.items()
        variant = GenomeError._variants.get(name)
        if variant is None or not issubclass(variant, cls):
            raise ValueError(f"unknown genome error variant {name!r}")
        if variant._newtype:
            payload = {variant._schema[0][0]: payload}
        kwargs = {field: decode(payload[field]) for field, decode in variant._schema}
        return variant(**kwargs)


class MissingNode(GenomeError):
    _schema = (("node", int),)
    _newtype = True

    def __init__(self, node: int) -> None:
        self.node = node
        super().__init__(f"node {node} does not exist")


class InvalidOutputNode(GenomeError):
    _schema = (("node", int),)
    _newtype = True

    def __init__(self, node: int) -> None:
        self.node = node
        super().__init__(f"node {node} cannot be the destination of a connection")


class SelfLoop(GenomeError):
    _schema = (("node", int),)
    _newtype = True

    def __init__(self, node: int) -> None:
        self.node = node
        super().__init__(f"connection from node {node} to itself")


class DuplicateConnection(GenomeError):
    _schema = (("key", ConnectionKey.from_dict),)
    _newtype = True

    def __init__(self, key: ConnectionKey) -> None:
        self.key = key
        super().__init__(f"connection {key} already exists and is enabled")


class UnknownInnovation(GenomeError):
    _schema = (("innovation", int),)
    _newtype = True

    def __init__(self, innovation: int) -> None:
        self.innovation = innovation
        super().__init__(f"no connection with innovation {innovation}")


class ConnectionAlreadyDisabled(GenomeError):
    _schema = (("innovation", int),)
    _newtype = True

    def __init__(self, innovation: int) -> None:
        self.innovation = innovation
        super().__init__(f"connection with innovation {innovation} is already disabled")


class MismatchedIo(GenomeError):
    _schema = (
        ("left_inputs", int),
        ("left_outputs", int),
        ("right_inputs", int),
        ("right_outputs", int),
    )

    def __init__(
        self, left_inputs: int, left_outputs: int, right_inputs: int, right_outputs: int
    ) -> None:
        self.left_inputs = left_inputs
        self.left_outputs = left_outputs
        self.right_inputs = right_inputs
        self.right_outputs = right_outputs
        super().__init__(
            f"parents differ in shape: {left_inputs}x{left_outputs} "
            f"vs {right_inputs}x{right_outputs}"
        )


class MismatchedNodeKind(GenomeError):
    _schema = (("node", int), ("left", NodeKind), ("right", NodeKind))

    def __init__(self, node: int, left: NodeKind, right: NodeKind) -> None:
        self.node = node
        self.left = left
        self.right = right
        super().__init__(
            f"node {node} is {left.value} in one parent and {right.value} in the other"
        )