"""Compatibility distance between two genomes."""

from __future__ import annotations

from .crossover import aligned_by_innovation
from .genome import Genome
from .types import DistanceCoefficients


def genetic_distance(left: Genome, right: Genome, coefficients: DistanceCoefficients) -> float:
    """Weighted sum of excess genes, disjoint genes and mean weight difference."""
    max_left = max(left.innovations(), default=0)
    max_right = max(right.innovations(), default=0)

    excess = 0
    disjoint = 0
    matching = 0
    weight_diff_sum = 0.0

    for l_gene, r_gene in aligned_by_innovation(left, right):
        if l_gene is not None and r_gene is not None:
            matching += 1
            weight_diff_sum += abs(l_gene.weight - r_gene.weight)
        elif l_gene is not None:
            if l_gene.innovation > max_right:
                excess += 1
            else:
                disjoint += 1
        elif r_gene is not None:
            if r_gene.innovation > max_left:
                excess += 1
            else:
                disjoint += 1

    n = max(left.connection_count(), right.connection_count())
    n_norm = 1.0 if n < coefficients.small_genome_threshold else float(n)
    avg_weight_diff = weight_diff_sum / matching if matching else 0.0

    return (
        coefficients.excess * excess / n_norm
        + coefficients.disjoint * disjoint / n_norm
        + coefficients.weight * avg_weight_diff
    )