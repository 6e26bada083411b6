"""Global allocator of innovation numbers and node identifiers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional


@dataclass(frozen=True)
class _IoLayout:
    n_inputs: int
    n_outputs: int
    input_nodes: tuple[int, ...]
    output_nodes: tuple[int, ...]


@dataclass
class InnovationTracker:
    """Hands out fresh connection innovations and hidden node ids."""

    next_innovation: int = 1
    next_node_id: int = 0
    io_layout: Optional[_IoLayout] = None

    def io_nodes(self, n_inputs: int, n_outputs: int) -> tuple[list[int], list[int]]:
        """Return the sensor and output node ids, fixing the layout on first use."""
        layout = self.io_layout
        if layout is not None:
            if layout.n_inputs != n_inputs or layout.n_outputs != n_outputs:
                raise ValueError(
                    "InnovationTracker was already initialized with different IO sizes"
                )
            return list(layout.input_nodes), list(layout.output_nodes)

        self.next_node_id = max(self.next_node_id, n_inputs + n_outputs)
        input_nodes = list(range(n_inputs))
        output_nodes = list(range(n_inputs, n_inputs + n_outputs))
        self.io_layout = _IoLayout(n_inputs, n_outputs, tuple(input_nodes), tuple(output_nodes))
        return input_nodes, output_nodes

    def next_connection_innovation(self) -> int:
        innovation = self.next_innovation
        self.next_innovation += 1
        return innovation

    def next_hidden_node_id(self) -> int:
        node = self.next_node_id
        self.next_node_id += 1
        return node

    def fork(self, n: int, innovation_budget: int, node_budget: int) -> list[InnovationTracker]:
        """Split off ``n`` trackers with disjoint ranges of innovations and node ids."""
        children = [
            replace(
                self,
                next_innovation=self.next_innovation + i * innovation_budget,
                next_node_id=self.next_node_id + i * node_budget,
            )
            for i in range(n)
        ]
        self.next_innovation += n * innovation_budget
        self.next_node_id += n * node_budget
        return children

    def join(self, child: InnovationTracker) -> None:
        """Advance this tracker to at least the position of ``child``."""
        self.next_innovation = max(self.next_innovation, child.next_innovation)
        self.next_node_id = max(self.next_node_id, child.next_node_id)

    def to_dict(self) -> dict[str, Any]:
        layout = self.io_layout
        return {
            "next_innovation": self.next_innovation,
            "next_node_id": self.next_node_id,
            "io_layout": None
            if layout is None
            else {
                "n_inputs": layout.n_inputs,
                "n_outputs": layout.n_outputs,
                "input_nodes": list(layout.input_nodes),
                "output_nodes": list(layout.output_nodes),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InnovationTracker:
        raw = data.get("io_layout")
        layout = (
            None
            if raw is None
            else _IoLayout(
                n_inputs=int(raw["n_inputs"]),
                n_outputs=int(raw["n_outputs"]),
                input_nodes=tuple(int(n) for n in raw["input_nodes"]),
                output_nodes=tuple(int(n) for n in raw["output_nodes"]),
            )
        )
        return cls(
            next_innovation=int(data["next_innovation"]),
            next_node_id=int(data["next_node_id"]),
            io_layout=layout,
        )