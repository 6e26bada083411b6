"""Executable network built from a genome.

Nodes are grouped into strongly connected components evaluated in
topological order. Acyclic components are computed in one pass; recurrent
components are iterated until they settle or an iteration budget runs out.
Only nodes that lie on a path from an input to an output take part.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .genome import Genome
from .topology import (
    Edge,
    PlannedComponent,
    build_plan,
    can_reach_outputs,
    component_index,
    reachable_from_inputs,
)
from .types import NodeKind

_KIND_CLASS = {
    NodeKind.SENSOR: "sensor",
    NodeKind.OUTPUT: "output",
    NodeKind.HIDDEN: "internal",
}

_MERMAID_HEADER = (
    "graph TD",
    "classDef sensor fill:#d7f0ff,stroke:#1e88e5,stroke-width:1px;",
    "classDef output fill:#e8f5e9,stroke:#43a047,stroke-width:1px;",
    "classDef internal fill:#fff8e1,stroke:#f9a825,stroke-width:1px;",
    "classDef component fill:#f3e5f5,stroke:#8e24aa,stroke-width:1px;",
)


def _relu(x: float) -> float:
    return x if x > 0.0 else 0.0


def _node_label(node_id: int) -> str:
    return f"NodeId({node_id})"


@dataclass
class ActivationConfig:
    """Settings of network activation."""

    recurrent_iterations: int = 12
    recurrent_epsilon: float = 1e-9
    logging_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "recurrent_iterations": self.recurrent_iterations,
            "recurrent_epsilon": self.recurrent_epsilon,
            "logging_enabled": self.logging_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivationConfig:
        return cls(
            recurrent_iterations=int(data["recurrent_iterations"]),
            recurrent_epsilon=float(data["recurrent_epsilon"]),
            logging_enabled=bool(data["logging_enabled"]),
        )


class PhenomeError(Exception):
    """Base class of errors raised while activating a network."""


class InputArityMismatch(PhenomeError):
    """The number of inputs does not match the number of sensor nodes."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} inputs, got {actual}")


class Phenome:
    """A network ready to be activated, derived from a genome."""

    def __init__(self, genome: Genome, config: Optional[ActivationConfig] = None) -> None:
        self._config = ActivationConfig() if config is None else ActivationConfig(
            config.recurrent_iterations, config.recurrent_epsilon, config.logging_enabled
        )
        self._node_ids = sorted(genome.nodes)
        self._node_kinds = [genome.nodes[node] for node in self._node_ids]
        position = {node: idx for idx, node in enumerate(self._node_ids)}

        self._all_edges = [
            Edge(
                src=position[gene.key.in_node],
                dst=position[gene.key.out_node],
                weight=gene.weight,
                enabled=gene.enabled,
            )
            for _, gene in sorted(genome.connections_by_innovation.items())
        ]
        enabled = [e for e in self._all_edges if e.enabled]
        node_count = len(self._node_ids)
        self._components: list[PlannedComponent] = build_plan(node_count, enabled)

        self._input_indices = [
            i for i, kind in enumerate(self._node_kinds) if kind is NodeKind.SENSOR
        ]
        self._output_indices = [
            i for i, kind in enumerate(self._node_kinds) if kind is NodeKind.OUTPUT
        ]

        to_output = can_reach_outputs(node_count, self._output_indices, enabled)
        from_input = reachable_from_inputs(node_count, self._input_indices, enabled)
        active = [a and b for a, b in zip(to_output, from_input)]

        self._active_components = [
            cid
            for cid, comp in enumerate(self._components)
            if any(active[n] for n in comp.nodes)
        ]

        seen: set[int] = set()
        self._active_non_sensor: list[int] = []
        for cid in self._active_components:
            for n in self._components[cid].nodes:
                if self._node_kinds[n] is not NodeKind.SENSOR and n not in seen:
                    seen.add(n)
                    self._active_non_sensor.append(n)

        self._state = [0.0] * node_count
        self._scratch = [0.0] * node_count
        self._audit_log: list[str] = []

    @classmethod
    def from_genome(
        cls, genome: Genome, config: Optional[ActivationConfig] = None
    ) -> Phenome:
        return cls(genome, config)

    def node_count(self) -> int:
        return len(self._node_ids)

    def connection_count(self) -> int:
        """Number of connections of the genome, disabled ones included."""
        return len(self._all_edges)

    def active_node_count(self) -> int:
        """Active sensors plus active non-sensor nodes."""
        active_nodes = {
            n for cid in self._active_components for n in self._components[cid].nodes
        }
        active_sensors = sum(1 for i in self._input_indices if i in active_nodes)
        return active_sensors + len(self._active_non_sensor)

    def active_connection_count(self) -> int:
        """Number of enabled connections feeding active components."""
        return sum(
            len(self._components[cid].external_edges) + len(self._components[cid].internal_edges)
            for cid in self._active_components
        )

    def _log(self, line: str) -> None:
        if self._config.logging_enabled:
            self._audit_log.append(line)

    def set_logging_enabled(self, enabled: bool) -> None:
        self._config.logging_enabled = enabled
        if not enabled:
            self._audit_log.clear()

    def audit_log(self) -> list[str]:
        """Lines logged during the last activation."""
        return list(self._audit_log)

    def take_audit_log(self) -> list[str]:
        """Return the logged lines and clear the log."""
        lines, self._audit_log = self._audit_log, []
        return lines

    def _collapsed_label(self, cid: int, comp: PlannedComponent) -> str:
        kind = "recurrent" if comp.recurrent else "acyclic"
        count = len(comp.nodes)
        word = "node" if count == 1 else "nodes"
        label = f"Component {cid} ({kind}, {count} {word})"
        sensors = [
            _node_label(self._node_ids[n])
            for n in comp.nodes
            if self._node_kinds[n] is NodeKind.SENSOR
        ]
        outputs = [
            _node_label(self._node_ids[n])
            for n in comp.nodes
            if self._node_kinds[n] is NodeKind.OUTPUT
        ]
        if sensors:
            label += f"<br/>sensors: {', '.join(sensors)}"
        if outputs:
            label += f"<br/>outputs: {', '.join(outputs)}"
        return label

    def to_mermaid(self, include_disabled: bool = False, collapse_components: bool = False) -> str:
        """Render the network as a Mermaid flowchart."""
        lines = list(_MERMAID_HEADER)
        edges = [e for e in self._all_edges if include_disabled or e.enabled]

        if collapse_components:
            for cid, comp in enumerate(self._components):
                lines.append(f'C{cid}["{self._collapsed_label(cid, comp)}"]')
                lines.append(f"class C{cid} component;")

            component_of_node = component_index(
                [comp.nodes for comp in self._components], len(self._node_ids)
            )
            seen: set[tuple[int, int]] = set()
            for e in edges:
                pair = (component_of_node[e.src], component_of_node[e.dst])
                if pair[0] == pair[1] or pair in seen:
                    continue
                seen.add(pair)
                link = "-->" if e.enabled else "-.->"
                lines.append(f"C{pair[0]} {link} C{pair[1]}")
        else:
            for cid, comp in enumerate(self._components):
                kind = "recurrent" if comp.recurrent else "acyclic"
                lines.append(f'subgraph C{cid}["Component {cid} ({kind})"]')
                for n in comp.nodes:
                    lines.append(
                        f'  N{n}["{_node_label(self._node_ids[n])} / '
                        f'{self._node_kinds[n].value}"]'
                    )
                lines.append("end")

            for e in edges:
                link = f"-->|{e.weight:.6f}|" if e.enabled else "-.->"
                lines.append(f"N{e.src} {link} N{e.dst}")

            for i, kind in enumerate(self._node_kinds):
                lines.append(f"class N{i} {_KIND_CLASS[kind]};")

        return "\n".join(lines)

    def _weighted_sums(self, comp: PlannedComponent) -> None:
        for n in comp.nodes:
            self._scratch[n] = 0.0
        for e in comp.external_edges:
            self._scratch[e.dst] += self._state[e.src] * e.weight
        for e in comp.internal_edges:
            self._scratch[e.dst] += self._state[e.src] * e.weight

    def _activate_acyclic(self, comp: PlannedComponent) -> None:
        self._weighted_sums(comp)
        for n in comp.nodes:
            if self._node_kinds[n] is not NodeKind.SENSOR:
                self._state[n] = _relu(self._scratch[n])

    def _activate_recurrent(self, cid: int, comp: PlannedComponent) -> None:
        epsilon = self._config.recurrent_epsilon
        for iteration in range(self._config.recurrent_iterations):
            self._weighted_sums(comp)
            max_delta = 0.0
            for n in comp.nodes:
                if self._node_kinds[n] is NodeKind.SENSOR:
                    continue
                nxt = _relu(self._scratch[n])
                max_delta = max(max_delta, abs(nxt - self._state[n]))
                self._state[n] = nxt
            if max_delta <= epsilon:
                self._log(f"component {cid} recurrent converged at iter {iteration}")
                break

    def activate(self, inputs: Sequence[float]) -> list[float]:
        """Feed ``inputs`` to the sensors and return the output values."""
        self._audit_log.clear()
        self._log("activate: begin")

        for n in self._active_non_sensor:
            self._state[n] = 0.0
        self._log("reset_non_sensor_state")

        if len(inputs) != len(self._input_indices):
            raise InputArityMismatch(len(self._input_indices), len(inputs))
        for idx, value in zip(self._input_indices, inputs):
            self._state[idx] = float(value)

        for cid in self._active_components:
            comp = self._components[cid]
            self._log(f"component {cid} recurrent={str(comp.recurrent).lower()}")
            if comp.recurrent:
                self._activate_recurrent(cid, comp)
            else:
                self._activate_acyclic(comp)

        outputs = []
        for idx in self._output_indices:
            value = self._state[idx]
            self._log(f"output {idx} ({_node_label(self._node_ids[idx])}) = {value:.12f}")
            outputs.append(value)

        self._log("activate: end")
        return outputs