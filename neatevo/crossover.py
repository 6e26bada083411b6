"""Alignment of genomes by innovation number and policy-driven crossover."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Iterator, Optional

from .genome import Genome
from .types import ConnectionGene, MismatchedIo, MismatchedNodeKind, NodeKind, ParentFitness

Aligned = tuple[Optional[ConnectionGene], Optional[ConnectionGene]]


class CrossoverPolicy(ABC):
    """Decisions taken while combining two parents."""

    @abstractmethod
    def choose_left_matching(self, left: ConnectionGene, right: ConnectionGene) -> bool:
        """Whether a gene present in both parents is taken from the left one."""

    @abstractmethod
    def choose_left_when_equal_for_unmatched(self) -> bool:
        """With equally fit parents, whether an unmatched gene is taken from the left."""

    @abstractmethod
    def enable_if_either_parent_disabled(self) -> bool:
        """Whether a gene enabled in exactly one parent ends up enabled."""


def aligned_by_innovation(left: Genome, right: Genome) -> Iterator[Aligned]:
    """Walk both genomes in innovation order.

    Yields ``(left_gene, right_gene)``; a gene missing from one side is ``None``.
    """
    left_genes = iter(left.connections_by_innovation.values())
    right_genes = iter(right.connections_by_innovation.values())
    l_gene = next(left_genes, None)
    r_gene = next(right_genes, None)

    while l_gene is not None or r_gene is not None:
        if r_gene is None or (l_gene is not None and l_gene.innovation < r_gene.innovation):
            yield l_gene, None
            l_gene = next(left_genes, None)
        elif l_gene is None or r_gene.innovation < l_gene.innovation:
            yield None, r_gene
            r_gene = next(right_genes, None)
        else:
            yield l_gene, r_gene
            l_gene = next(left_genes, None)
            r_gene = next(right_genes, None)


def _merged_nodes(left: Genome, right: Genome) -> dict[int, NodeKind]:
    merged = dict(left.nodes)
    for node, kind_right in right.nodes.items():
        kind_left = merged.get(node)
        if kind_left is None:
            merged[node] = kind_right
        elif kind_left is not kind_right:
            raise MismatchedNodeKind(node, kind_left, kind_right)
    return dict(sorted(merged.items()))


def _inherit_unmatched(fitness: ParentFitness, is_left: bool, policy: CrossoverPolicy) -> bool:
    if fitness is ParentFitness.LEFT:
        return is_left
    if fitness is ParentFitness.RIGHT:
        return not is_left
    return policy.choose_left_when_equal_for_unmatched() == is_left


def crossover_with_policy(
    left: Genome, right: Genome, fitness: ParentFitness, policy: CrossoverPolicy
) -> Genome:
    """Combine two parents into a child genome, consulting ``policy`` for each choice."""
    if left.n_inputs != right.n_inputs or left.n_outputs != right.n_outputs:
        raise MismatchedIo(left.n_inputs, left.n_outputs, right.n_inputs, right.n_outputs)

    child = Genome(left.n_inputs, left.n_outputs, _merged_nodes(left, right))

    for l_gene, r_gene in aligned_by_innovation(left, right):
        if l_gene is not None and r_gene is not None:
            source = l_gene if policy.choose_left_matching(l_gene, r_gene) else r_gene
            inherited = replace(source)
            if l_gene.enabled != r_gene.enabled:
                inherited.enabled = policy.enable_if_either_parent_disabled()
            child.insert_connection_gene(inherited)
        elif l_gene is not None:
            if _inherit_unmatched(fitness, True, policy):
                child.insert_connection_gene(replace(l_gene))
        elif r_gene is not None:
            if _inherit_unmatched(fitness, False, policy):
                child.insert_connection_gene(replace(r_gene))

    return child