"""Graph analysis used to plan network activation.

The plan orders strongly connected components topologically. Acyclic
components are evaluated once; recurrent ones are iterated.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence


@dataclass(frozen=True)
class Edge:
    """A connection between two node positions of a phenome."""

    src: int
    dst: int
    weight: float
    enabled: bool = True


@dataclass
class PlannedComponent:
    """One strongly connected component and the edges feeding it."""

    nodes: list[int]
    external_edges: list[Edge] = field(default_factory=list)
    internal_edges: list[Edge] = field(default_factory=list)
    recurrent: bool = False


def _adjacency(node_count: int, edges: Iterable[Edge], reverse: bool = False) -> list[list[int]]:
    graph: list[list[int]] = [[] for _ in range(node_count)]
    for e in edges:
        if reverse:
            graph[e.dst].append(e.src)
        else:
            graph[e.src].append(e.dst)
    return graph


def strongly_connected_components(node_count: int, edges: Sequence[Edge]) -> list[list[int]]:
    """Tarjan's algorithm; components come out in reverse topological order.

    Each component's nodes are sorted ascending.
    """
    graph = _adjacency(node_count, edges)
    index_of: list[int | None] = [None] * node_count
    lowlink = [0] * node_count
    on_stack = [False] * node_count
    stack: list[int] = []
    components: list[list[int]] = []
    counter = 0

    def visit(v: int) -> Iterator[int]:
        nonlocal counter
        index_of[v] = counter
        lowlink[v] = counter
        counter += 1
        stack.append(v)
        on_stack[v] = True
        return iter(graph[v])

    for root in range(node_count):
        if index_of[root] is not None:
            continue
        work = [(root, visit(root))]
        while work:
            v, neighbours = work[-1]
            for w in neighbours:
                w_index = index_of[w]
                if w_index is None:
                    work.append((w, visit(w)))
                    break
                if on_stack[w]:
                    lowlink[v] = min(lowlink[v], w_index)
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[v])
                if lowlink[v] == index_of[v]:
                    component = []
                    while True:
                        w = stack.pop()
                        on_stack[w] = False
                        component.append(w)
                        if w == v:
                            break
                    component.sort()
                    components.append(component)

    return components


def component_index(components: Sequence[Sequence[int]], node_count: int) -> list[int]:
    """Map every node position to the index of the component holding it."""
    component_of_node = [0] * node_count
    for cid, component in enumerate(components):
        for node in component:
            component_of_node[node] = cid
    return component_of_node


def condensation_order(
    components: Sequence[Sequence[int]],
    component_of_node: Sequence[int],
    edges: Sequence[Edge],
) -> list[int]:
    """Topological order of the component graph (Kahn's algorithm)."""
    count = len(components)
    successors: list[set[int]] = [set() for _ in range(count)]
    indegree = [0] * count

    for e in edges:
        c_src = component_of_node[e.src]
        c_dst = component_of_node[e.dst]
        if c_src != c_dst and c_dst not in successors[c_src]:
            successors[c_src].add(c_dst)
            indegree[c_dst] += 1

    queue = deque(cid for cid, degree in enumerate(indegree) if degree == 0)
    order: list[int] = []
    while queue:
        cid = queue.popleft()
        order.append(cid)
        for nxt in sorted(successors[cid]):
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)
    return order


def build_plan(node_count: int, edges: Sequence[Edge]) -> list[PlannedComponent]:
    """Components in evaluation order, each with its incoming and internal edges."""
    components = strongly_connected_components(node_count, edges)
    component_of_node = component_index(components, node_count)
    order = condensation_order(components, component_of_node, edges)

    plan = []
    for cid in order:
        nodes = list(components[cid])
        members = set(nodes)
        external = [e for e in edges if e.dst in members and e.src not in members]
        internal = [e for e in edges if e.src in members and e.dst in members]
        has_self_loop = any(e.src == e.dst for e in internal)
        plan.append(
            PlannedComponent(
                nodes=nodes,
                external_edges=external,
                internal_edges=internal,
                recurrent=len(nodes) > 1 or has_self_loop,
            )
        )
    return plan


def _breadth_first(graph: list[list[int]], starts: Iterable[int]) -> list[bool]:
    seen = [False] * len(graph)
    queue: deque[int] = deque()
    for start in starts:
        if not seen[start]:
            seen[start] = True
            queue.append(start)
    while queue:
        node = queue.popleft()
        for nxt in graph[node]:
            if not seen[nxt]:
                seen[nxt] = True
                queue.append(nxt)
    return seen


def can_reach_outputs(
    node_count: int, output_indices: Iterable[int], edges: Sequence[Edge]
) -> list[bool]:
    """For each node, whether some output is reachable from it."""
    return _breadth_first(_adjacency(node_count, edges, reverse=True), output_indices)


def reachable_from_inputs(
    node_count: int, input_indices: Iterable[int], edges: Sequence[Edge]
) -> list[bool]:
    """For each node, whether it is reachable from some input."""
    return _breadth_first(_adjacency(node_count, edges), input_indices)