"""Removal of disabled connections and orphaned hidden nodes."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .genome import Genome
from .types import NodeKind


def _retained_nodes(genome: Genome) -> set[int]:
    referenced = {
        node
        for gene in genome.connections_by_innovation.values()
        if gene.enabled
        for node in (gene.key.in_node, gene.key.out_node)
    }
    io = {
        node
        for node, kind in genome.nodes.items()
        if kind in (NodeKind.SENSOR, NodeKind.OUTPUT)
    }
    return referenced | io


def prune(genome: Genome) -> Genome:
    """Copy of ``genome`` without disabled connections and unreferenced hidden nodes.

    Sensor and output nodes are always kept.
    """
    keep = _retained_nodes(genome)
    pruned = Genome(
        genome.n_inputs,
        genome.n_outputs,
        {node: kind for node, kind in genome.nodes.items() if node in keep},
    )
    for gene in genome.connections_by_innovation.values():
        if gene.enabled:
            pruned.insert_connection_gene(replace(gene))
    return pruned


def prune_population(genomes: Iterable[Genome]) -> list[Genome]:
    return [prune(genome) for genome in genomes]