"""Reproduction of a species: elitism, tournament selection, crossover and mutation."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Sequence

from .crossover import CrossoverPolicy, crossover_with_policy
from .genome import AddConnection, AddNode, DisableConnection, Genome, Mutation, PerturbWeight
from .innovation import InnovationTracker
from .species import Species
from .types import ConnectionGene, GenomeError, ParentFitness

_TOURNAMENT_SIZE = 3
_DISABLED_REENABLE_PROBABILITY = 0.75


@dataclass
class ReproductionConfig:
    """Rates and sizes that drive the production of offspring."""

    mutation_rate_perturb_weight: float = 0.8
    mutation_rate_add_connection: float = 0.05
    mutation_rate_add_node: float = 0.03
    mutation_rate_disable_connection: float = 0.01
    weight_perturb_magnitude: float = 0.5
    crossover_rate: float = 0.75
    elitism_count: int = 1
    interspecies_crossover_rate: float = 0.001

    def to_dict(self) -> dict[str, Any]:
        return {
            "mutation_rate_perturb_weight": self.mutation_rate_perturb_weight,
            "mutation_rate_add_connection": self.mutation_rate_add_connection,
            "mutation_rate_add_node": self.mutation_rate_add_node,
            "mutation_rate_disable_connection": self.mutation_rate_disable_connection,
            "weight_perturb_magnitude": self.weight_perturb_magnitude,
            "crossover_rate": self.crossover_rate,
            "elitism_count": self.elitism_count,
            "interspecies_crossover_rate": self.interspecies_crossover_rate,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReproductionConfig:
        return cls(
            mutation_rate_perturb_weight=float(data["mutation_rate_perturb_weight"]),
            mutation_rate_add_connection=float(data["mutation_rate_add_connection"]),
            mutation_rate_add_node=float(data["mutation_rate_add_node"]),
            mutation_rate_disable_connection=float(data["mutation_rate_disable_connection"]),
            weight_perturb_magnitude=float(data["weight_perturb_magnitude"]),
            crossover_rate=float(data["crossover_rate"]),
            elitism_count=int(data["elitism_count"]),
            interspecies_crossover_rate=float(data["interspecies_crossover_rate"]),
        )


def _select_parent(
    member_indices: Sequence[int], fitnesses: Sequence[float], rng: random.Random
) -> int:
    """Tournament selection; on ties the last candidate drawn wins."""
    size = min(len(member_indices), _TOURNAMENT_SIZE)
    candidates = rng.sample(list(member_indices), size)
    return max(reversed(candidates), key=lambda i: fitnesses[i])


def _enabled_innovations(genome: Genome) -> list[int]:
    return [g.innovation for g in genome.connections_by_innovation.values() if g.enabled]


def _random_mutations(
    genome: Genome, config: ReproductionConfig, rng: random.Random
) -> list[Mutation]:
    mutations: list[Mutation] = []

    if rng.random() < config.mutation_rate_perturb_weight:
        innovations = list(genome.innovations())
        if innovations:
            innovation = rng.choice(innovations)
            magnitude = config.weight_perturb_magnitude
            mutations.append(PerturbWeight(innovation, rng.uniform(-magnitude, magnitude)))

    if rng.random() < config.mutation_rate_add_connection:
        nodes = list(genome.nodes)
        if len(nodes) >= 2:
            in_node = rng.choice(nodes)
            out_node = rng.choice(nodes)
            mutations.append(AddConnection(in_node, out_node, rng.uniform(-1.0, 1.0)))

    if rng.random() < config.mutation_rate_add_node:
        enabled = _enabled_innovations(genome)
        if enabled:
            mutations.append(AddNode(rng.choice(enabled)))

    if rng.random() < config.mutation_rate_disable_connection:
        enabled = _enabled_innovations(genome)
        if enabled:
            mutations.append(DisableConnection(rng.choice(enabled)))

    return mutations


class _RandomCrossoverPolicy(CrossoverPolicy):
    def __init__(self, rng: random.Random, disabled_reenable_probability: float) -> None:
        self._rng = rng
        self._reenable = disabled_reenable_probability

    def choose_left_matching(self, left: ConnectionGene, right: ConnectionGene) -> bool:
        return self._rng.random() < 0.5

    def choose_left_when_equal_for_unmatched(self) -> bool:
        return self._rng.random() < 0.5

    def enable_if_either_parent_disabled(self) -> bool:
        return self._rng.random() < self._reenable


def _offspring_by_mutation(
    parent: Genome,
    tracker: InnovationTracker,
    config: ReproductionConfig,
    rng: random.Random,
) -> Genome:
    mutations = _random_mutations(parent, config, rng)
    if not mutations:
        return parent.copy()
    child = parent.copy()
    try:
        for mutation in mutations:
            child.apply_mutation_in_place(tracker, mutation)
    except GenomeError:
        return parent.copy()
    return child


def _offspring_by_crossover(
    parent_a: Genome,
    parent_b: Genome,
    fitness_a: float,
    fitness_b: float,
    tracker: InnovationTracker,
    config: ReproductionConfig,
    rng: random.Random,
) -> Genome:
    if fitness_a > fitness_b:
        fitness = ParentFitness.LEFT
    elif fitness_b > fitness_a:
        fitness = ParentFitness.RIGHT
    else:
        fitness = ParentFitness.EQUAL

    policy = _RandomCrossoverPolicy(rng, _DISABLED_REENABLE_PROBABILITY)
    try:
        child = crossover_with_policy(parent_a, parent_b, fitness, policy)
    except GenomeError:
        return _offspring_by_mutation(parent_a, tracker, config, rng)
    return _offspring_by_mutation(child, tracker, config, rng)


def reproduce_species(
    species: Species,
    all_genomes: Sequence[Genome],
    all_fitnesses: Sequence[float],
    offspring_count: int,
    tracker: InnovationTracker,
    config: ReproductionConfig,
    rng: random.Random,
) -> list[Genome]:
    """Produce ``offspring_count`` genomes from the members of ``species``.

    The fittest members are carried over unchanged (elitism); the rest come from
    crossover of tournament-selected parents or from mutation of a single parent.
    """
    if offspring_count == 0 or not species.member_indices:
        return []

    ranked = sorted(species.member_indices, key=lambda i: all_fitnesses[i], reverse=True)
    elites = min(config.elitism_count, len(ranked), offspring_count)
    offspring = [all_genomes[idx].copy() for idx in ranked[:elites]]

    while len(offspring) < offspring_count:
        if rng.random() < config.crossover_rate and len(ranked) >= 2:
            a = _select_parent(ranked, all_fitnesses, rng)
            b = _select_parent(ranked, all_fitnesses, rng)
            child = _offspring_by_crossover(
                all_genomes[a],
                all_genomes[b],
                all_fitnesses[a],
                all_fitnesses[b],
                tracker,
                config,
                rng,
            )
        else:
            parent = _select_parent(ranked, all_fitnesses, rng)
            child = _offspring_by_mutation(all_genomes[parent], tracker, config, rng)
        offspring.append(child)

    return offspring