"""Grouping genomes into species and sharing offspring between them."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

from .distance import genetic_distance
from .genome import Genome
from .types import DistanceCoefficients


class RepresentativeStrategy(Enum):
    """How a species picks the genome new members are compared against."""

    PERMANENT = "Permanent"
    RANDOM_PER_GENERATION = "RandomPerGeneration"


@dataclass
class Species:
    """A group of mutually compatible genomes, identified by index into the population."""

    id: int
    representative: Genome
    member_indices: list[int] = field(default_factory=list)
    stagnation_counter: int = 0
    best_fitness: float = -math.inf

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "representative": self.representative.to_dict(),
            "member_indices": list(self.member_indices),
            "stagnation_counter": self.stagnation_counter,
            "best_fitness": self.best_fitness,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Species:
        return cls(
            id=int(data["id"]),
            representative=Genome.from_dict(data["representative"]),
            member_indices=[int(i) for i in data["member_indices"]],
            stagnation_counter=int(data["stagnation_counter"]),
            best_fitness=float(data["best_fitness"]),
        )


@dataclass
class SpeciationConfig:
    """Parameters of speciation and of the adaptive compatibility threshold."""

    target_species_count: int = 10
    species_count_lower_bound: int = 5
    species_count_upper_bound: int = 15
    compatibility_threshold: float = 3.0
    compatibility_threshold_min: float = 0.001
    compatibility_threshold_max: float = 50.0
    threshold_adjustment_rate: float = 0.1
    threshold_adjustment_max_iterations: int = 20
    distance_coefficients: DistanceCoefficients = field(default_factory=DistanceCoefficients)
    stagnation_limit: int = 50
    representative_strategy: RepresentativeStrategy = RepresentativeStrategy.PERMANENT
    pruning_interval: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_species_count": self.target_species_count,
            "species_count_lower_bound": self.species_count_lower_bound,
            "species_count_upper_bound": self.species_count_upper_bound,
            "compatibility_threshold": self.compatibility_threshold,
            "compatibility_threshold_min": self.compatibility_threshold_min,
            "compatibility_threshold_max": self.compatibility_threshold_max,
            "threshold_adjustment_rate": self.threshold_adjustment_rate,
            "threshold_adjustment_max_iterations": self.threshold_adjustment_max_iterations,
            "distance_coefficients": self.distance_coefficients.to_dict(),
            "stagnation_limit": self.stagnation_limit,
            "representative_strategy": self.representative_strategy.value,
            "pruning_interval": self.pruning_interval,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpeciationConfig:
        interval = data.get("pruning_interval")
        return cls(
            target_species_count=int(data["target_species_count"]),
            species_count_lower_bound=int(data["species_count_lower_bound"]),
            species_count_upper_bound=int(data["species_count_upper_bound"]),
            compatibility_threshold=float(data["compatibility_threshold"]),
            compatibility_threshold_min=float(data["compatibility_threshold_min"]),
            compatibility_threshold_max=float(data["compatibility_threshold_max"]),
            threshold_adjustment_rate=float(data["threshold_adjustment_rate"]),
            threshold_adjustment_max_iterations=int(data["threshold_adjustment_max_iterations"]),
            distance_coefficients=DistanceCoefficients.from_dict(data["distance_coefficients"]),
            stagnation_limit=int(data["stagnation_limit"]),
            representative_strategy=RepresentativeStrategy(data["representative_strategy"]),
            pruning_interval=None if interval is None else int(interval),
        )


def should_prune(generation: int, config: SpeciationConfig) -> bool:
    """Whether genomes are to be pruned in this generation."""
    interval = config.pruning_interval
    if interval is None or interval <= 0:
        return False
    return generation > 0 and generation % interval == 0


def _count_species_at_threshold(
    genomes: Sequence[Genome],
    representatives: Sequence[Genome],
    threshold: float,
    coefficients: DistanceCoefficients,
) -> int:
    unmatched = sum(
        1
        for genome in genomes
        if not any(
            genetic_distance(rep, genome, coefficients) < threshold for rep in representatives
        )
    )
    return len(representatives) + unmatched


def _search_threshold_to_target(
    genomes: Sequence[Genome],
    representatives: Sequence[Genome],
    config: SpeciationConfig,
    current_count: int,
) -> float:
    too_many = current_count > config.species_count_upper_bound
    too_few = current_count < config.species_count_lower_bound
    threshold = config.compatibility_threshold
    if not too_many and not too_few:
        return threshold

    increase = too_many
    target = config.target_species_count
    low, high = config.compatibility_threshold_min, config.compatibility_threshold_max

    for _ in range(config.threshold_adjustment_max_iterations):
        delta = threshold * config.threshold_adjustment_rate
        threshold = threshold + delta if increase else threshold - delta
        threshold = min(max(threshold, low), high)

        trial = _count_species_at_threshold(
            genomes, representatives, threshold, config.distance_coefficients
        )
        if (trial <= target) if increase else (trial >= target):
            return threshold
        if threshold <= low or threshold >= high:
            return threshold

    return threshold


def _find_compatible_species(
    genome: Genome, species: Sequence[Species], config: SpeciationConfig
) -> Optional[Species]:
    return next(
        (
            s
            for s in species
            if genetic_distance(s.representative, genome, config.distance_coefficients)
            < config.compatibility_threshold
        ),
        None,
    )


def _choose_representative(
    species: Species,
    genomes: Sequence[Genome],
    strategy: RepresentativeStrategy,
    rng: random.Random,
) -> Genome:
    if strategy is RepresentativeStrategy.PERMANENT:
        return species.representative
    return genomes[rng.choice(species.member_indices)]


def speciate(
    genomes: Sequence[Genome],
    previous_species: Sequence[Species],
    config: SpeciationConfig,
    next_species_id: int,
    rng: random.Random,
) -> tuple[list[Species], int]:
    """Assign every genome to a species.

    The compatibility threshold of ``config`` is adjusted in place when the previous
    species count lies outside its bounds. Returns the non-empty species and the next
    unused species id.
    """
    representatives = [s.representative for s in previous_species]
    previous_count = max(len(previous_species), 1)

    if (
        previous_count > config.species_count_upper_bound
        or previous_count < config.species_count_lower_bound
    ):
        config.compatibility_threshold = _search_threshold_to_target(
            genomes, representatives, config, previous_count
        )

    species = [
        Species(
            id=s.id,
            representative=s.representative,
            member_indices=[],
            stagnation_counter=s.stagnation_counter,
            best_fitness=s.best_fitness,
        )
        for s in previous_species
    ]

    for idx, genome in enumerate(genomes):
        home = _find_compatible_species(genome, species, config)
        if home is not None:
            home.member_indices.append(idx)
        else:
            species.append(Species(id=next_species_id, representative=genome, member_indices=[idx]))
            next_species_id += 1

    survivors = [s for s in species if s.member_indices]
    for s in survivors:
        s.representative = _choose_representative(
            s, genomes, config.representative_strategy, rng
        )
    return survivors, next_species_id


def update_stagnation(species: Sequence[Species], fitnesses: Sequence[float]) -> None:
    """Record each species' best fitness, counting generations without improvement."""
    for s in species:
        best = max((fitnesses[i] for i in s.member_indices), default=-math.inf)
        if best > s.best_fitness:
            s.best_fitness = best
            s.stagnation_counter = 0
        else:
            s.stagnation_counter += 1


def compute_offspring_counts(
    species: Sequence[Species],
    fitnesses: Sequence[float],
    total_population: int,
    stagnation_limit: int,
) -> list[int]:
    """Share ``total_population`` between non-stagnant species by adjusted fitness."""
    active: list[tuple[int, float]] = []
    for si, s in enumerate(species):
        if s.stagnation_counter >= stagnation_limit:
            continue
        size = len(s.member_indices)
        adjusted = sum(fitnesses[i] / size for i in s.member_indices)
        active.append((si, max(adjusted, 0.0)))

    total_adjusted = sum(adj for _, adj in active)
    counts = [0] * len(species)

    if total_adjusted <= 0.0:
        per_species, remainder = divmod(total_population, max(len(active), 1))
        for rank, (si, _) in enumerate(active):
            counts[si] = per_species + (1 if rank < remainder else 0)
        return counts

    assigned = 0
    last = len(active) - 1
    for rank, (si, adj) in enumerate(active):
        if rank == last:
            share = total_population - assigned
        else:
            raw = math.floor(adj / total_adjusted * total_population + 0.5)
            share = min(raw, total_population - assigned)
        counts[si] = share
        assigned += share
    return counts