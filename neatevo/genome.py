"""Genomes: node and connection genes, construction and structural mutation."""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterator, Optional, Union

from .innovation import InnovationTracker
from .types import (
    ConnectionAlreadyDisabled,
    ConnectionGene,
    ConnectionKey,
    DuplicateConnection,
    InvalidOutputNode,
    MissingNode,
    NodeKind,
    SelfLoop,
    UnknownInnovation,
)


@dataclass(frozen=True)
class AddConnection:
    in_node: int
    out_node: int
    weight: float


@dataclass(frozen=True)
class AddNode:
    split_innovation: int


@dataclass(frozen=True)
class PerturbWeight:
    innovation: int
    delta: float


@dataclass(frozen=True)
class DisableConnection:
    innovation: int


Mutation = Union[AddConnection, AddNode, PerturbWeight, DisableConnection]


def _build_nodes(input_nodes: list[int], output_nodes: list[int]) -> dict[int, NodeKind]:
    nodes = {n: NodeKind.SENSOR for n in input_nodes}
    nodes.update({n: NodeKind.OUTPUT for n in output_nodes})
    return dict(sorted(nodes.items()))


def _fully_connected_topology(
    tracker: InnovationTracker, input_nodes: list[int], output_nodes: list[int]
) -> list[tuple[ConnectionKey, int]]:
    keys = [ConnectionKey(i, o) for o in output_nodes for i in input_nodes]
    return [(key, tracker.next_connection_innovation()) for key in keys]


@dataclass
class Genome:
    """A network description: node kinds plus connections ordered by innovation."""

    n_inputs: int
    n_outputs: int
    nodes: dict[int, NodeKind] = field(default_factory=dict)
    connections_by_innovation: dict[int, ConnectionGene] = field(default_factory=dict)
    connection_to_innovation: dict[ConnectionKey, int] = field(default_factory=dict)

    @classmethod
    def _from_topology(
        cls,
        n_inputs: int,
        n_outputs: int,
        nodes: dict[int, NodeKind],
        topology: list[tuple[ConnectionKey, int]],
        weight_of: Callable[[int, int], float],
    ) -> Genome:
        genome = cls(n_inputs, n_outputs, dict(nodes))
        for key, innovation in topology:
            weight = weight_of(key.in_node, key.out_node)
            genome.insert_connection_gene(ConnectionGene(key, innovation, weight, True))
        return genome

    @classmethod
    def minimal_fully_connected(
        cls,
        n_inputs: int,
        n_outputs: int,
        tracker: InnovationTracker,
        initial_weight: Callable[[int, int], float],
    ) -> Genome:
        """Every sensor connected to every output, weights from ``initial_weight(in, out)``."""
        input_nodes, output_nodes = tracker.io_nodes(n_inputs, n_outputs)
        nodes = _build_nodes(input_nodes, output_nodes)
        topology = _fully_connected_topology(tracker, input_nodes, output_nodes)
        return cls._from_topology(n_inputs, n_outputs, nodes, topology, initial_weight)

    @classmethod
    def random_fully_connected_population(
        cls,
        n: int,
        n_inputs: int,
        n_outputs: int,
        tracker: InnovationTracker,
        rng: random.Random,
    ) -> list[Genome]:
        """``n`` genomes sharing one fully connected topology, weights in [-1, 1)."""
        input_nodes, output_nodes = tracker.io_nodes(n_inputs, n_outputs)
        nodes = _build_nodes(input_nodes, output_nodes)
        topology = _fully_connected_topology(tracker, input_nodes, output_nodes)
        return [
            cls._from_topology(
                n_inputs, n_outputs, nodes, topology, lambda _i, _o: rng.random() * 2.0 - 1.0
            )
            for _ in range(n)
        ]

    def connection_count(self) -> int:
        return len(self.connections_by_innovation)

    def connection(self, innovation: int) -> Optional[ConnectionGene]:
        return self.connections_by_innovation.get(innovation)

    def innovations(self) -> Iterator[int]:
        """Innovation numbers in ascending order."""
        return iter(self.connections_by_innovation)

    def copy(self) -> Genome:
        return Genome(
            self.n_inputs,
            self.n_outputs,
            dict(self.nodes),
            {i: replace(g) for i, g in self.connections_by_innovation.items()},
            dict(self.connection_to_innovation),
        )

    def insert_connection_gene(self, gene: ConnectionGene) -> None:
        """Insert or replace a gene, keeping connections ordered by innovation."""
        self.connection_to_innovation[gene.key] = gene.innovation
        conns = self.connections_by_innovation
        in_order = (
            not conns or gene.innovation in conns or gene.innovation > next(reversed(conns))
        )
        conns[gene.innovation] = gene
        if not in_order:
            self.connections_by_innovation = dict(sorted(conns.items()))

    def _insert_node(self, node: int, kind: NodeKind) -> None:
        in_order = not self.nodes or node in self.nodes or node > next(reversed(self.nodes))
        self.nodes[node] = kind
        if not in_order:
            self.nodes = dict(sorted(self.nodes.items()))

    def _validate_endpoints(self, in_node: int, out_node: int) -> None:
        if in_node == out_node:
            raise SelfLoop(in_node)
        if in_node not in self.nodes:
            raise MissingNode(in_node)
        out_kind = self.nodes.get(out_node)
        if out_kind is None:
            raise MissingNode(out_node)
        if out_kind is NodeKind.SENSOR:
            raise InvalidOutputNode(out_node)

    def _gene(self, innovation: int) -> ConnectionGene:
        gene = self.connections_by_innovation.get(innovation)
        if gene is None:
            raise UnknownInnovation(innovation)
        return gene

    def add_connection(
        self, tracker: InnovationTracker, in_node: int, out_node: int, weight: float
    ) -> None:
        """Add a connection, or re-enable a disabled one with the new weight."""
        self._validate_endpoints(in_node, out_node)
        key = ConnectionKey(in_node, out_node)
        existing = self.connection_to_innovation.get(key)
        if existing is not None:
            gene = self._gene(existing)
            if gene.enabled:
                raise DuplicateConnection(key)
            gene.enabled = True
            gene.weight = weight
            return
        innovation = tracker.next_connection_innovation()
        self.insert_connection_gene(ConnectionGene(key, innovation, weight, True))

    def with_added_connection(
        self, tracker: InnovationTracker, in_node: int, out_node: int, weight: float
    ) -> Genome:
        child = self.copy()
        child.add_connection(tracker, in_node, out_node, weight)
        return child

    def add_node(self, tracker: InnovationTracker, split_innovation: int) -> None:
        """Split an enabled connection with a new hidden node."""
        original = self._gene(split_innovation)
        if not original.enabled:
            raise ConnectionAlreadyDisabled(split_innovation)
        original.enabled = False

        new_node = tracker.next_hidden_node_id()
        self._insert_node(new_node, NodeKind.HIDDEN)

        left = ConnectionGene(
            ConnectionKey(original.key.in_node, new_node),
            tracker.next_connection_innovation(),
            1.0,
            True,
        )
        right = ConnectionGene(
            ConnectionKey(new_node, original.key.out_node),
            tracker.next_connection_innovation(),
            original.weight,
            True,
        )
        self.insert_connection_gene(left)
        self.insert_connection_gene(right)

    def with_added_node(self, tracker: InnovationTracker, split_innovation: int) -> Genome:
        child = self.copy()
        child.add_node(tracker, split_innovation)
        return child

    def perturb_weight(self, innovation: int, delta: float) -> None:
        self._gene(innovation).weight += delta

    def with_perturbed_weight(self, innovation: int, delta: float) -> Genome:
        child = self.copy()
        child.perturb_weight(innovation, delta)
        return child

    def disable_connection(self, innovation: int) -> None:
        gene = self._gene(innovation)
        if not gene.enabled:
            raise ConnectionAlreadyDisabled(innovation)
        gene.enabled = False

    def with_disabled_connection(self, innovation: int) -> Genome:
        child = self.copy()
        child.disable_connection(innovation)
        return child

    def apply_mutation_in_place(self, tracker: InnovationTracker, mutation: Mutation) -> None:
        match mutation:
            case AddConnection(in_node, out_node, weight):
                self.add_connection(tracker, in_node, out_node, weight)
            case AddNode(split_innovation):
                self.add_node(tracker, split_innovation)
            case PerturbWeight(innovation, delta):
                self.perturb_weight(innovation, delta)
            case DisableConnection(innovation):
                self.disable_connection(innovation)
            case _:
                raise TypeError(f"not a mutation: {mutation!r}")

    def apply_mutation(self, tracker: InnovationTracker, mutation: Mutation) -> Genome:
        child = self.copy()
        child.apply_mutation_in_place(tracker, mutation)
        return child

    def apply_mutations(self, tracker: InnovationTracker, mutations: list[Mutation]) -> Genome:
        """Apply mutations in order to a copy; the original is untouched on failure."""
        child = self.copy()
        for mutation in mutations:
            child.apply_mutation_in_place(tracker, mutation)
        return child

    def to_dict(self) -> dict[str, Any]:
        return {
            "n_inputs": self.n_inputs,
            "n_outputs": self.n_outputs,
            "nodes": {str(n): kind.value for n, kind in self.nodes.items()},
            "connections_by_innovation": {
                str(i): gene.to_dict() for i, gene in self.connections_by_innovation.items()
            },
            "connection_to_innovation": {
                str(key): innovation for key, innovation in self.connection_to_innovation.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Genome:
        nodes = {int(n): NodeKind(kind) for n, kind in data["nodes"].items()}
        connections = {
            int(i): ConnectionGene.from_dict(gene)
            for i, gene in data["connections_by_innovation"].items()
        }
        lookup = {
            ConnectionKey.parse(key): int(innovation)
            for key, innovation in data["connection_to_innovation"].items()
        }
        return cls(
            n_inputs=int(data["n_inputs"]),
            n_outputs=int(data["n_outputs"]),
            nodes=dict(sorted(nodes.items())),
            connections_by_innovation=dict(sorted(connections.items())),
            connection_to_innovation=lookup,
        )