"""Per-generation statistics and loggers that record them."""

from __future__ import annotations

import json
import math
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from .species import Species


def _float_out(value: float) -> Optional[float]:
    # Non-finite numbers are written as null, as JSON has no literal for them.
    return value if math.isfinite(value) else None


def _float_in(value: Optional[float]) -> float:
    return -math.inf if value is None else float(value)


@dataclass
class SpeciesStats:
    """Statistics of one species in one generation."""

    species_id: int
    size: int
    best_fitness: float
    mean_fitness: float
    stagnation_counter: int
    representative_nodes: int
    representative_connections: int
    aggregated_custom_stats: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "species_id": self.species_id,
            "size": self.size,
            "best_fitness": _float_out(self.best_fitness),
            "mean_fitness": _float_out(self.mean_fitness),
            "stagnation_counter": self.stagnation_counter,
            "representative_nodes": self.representative_nodes,
            "representative_connections": self.representative_connections,
        }
        if self.aggregated_custom_stats:
            data["aggregated_custom_stats"] = dict(sorted(self.aggregated_custom_stats.items()))
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpeciesStats:
        custom = data.get("aggregated_custom_stats") or {}
        return cls(
            species_id=int(data["species_id"]),
            size=int(data["size"]),
            best_fitness=_float_in(data["best_fitness"]),
            mean_fitness=_float_in(data["mean_fitness"]),
            stagnation_counter=int(data["stagnation_counter"]),
            representative_nodes=int(data["representative_nodes"]),
            representative_connections=int(data["representative_connections"]),
            aggregated_custom_stats={k: float(v) for k, v in sorted(custom.items())},
        )


@dataclass
class GenerationStats:
    """Population-wide statistics of one generation."""

    generation: int
    population_size: int
    species_count: int
    best_fitness: float
    mean_fitness: float
    median_fitness: float
    fitness_std_dev: float
    compatibility_threshold: float
    species_details: list[SpeciesStats] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "population_size": self.population_size,
            "species_count": self.species_count,
            "best_fitness": _float_out(self.best_fitness),
            "mean_fitness": _float_out(self.mean_fitness),
            "median_fitness": _float_out(self.median_fitness),
            "fitness_std_dev": _float_out(self.fitness_std_dev),
            "compatibility_threshold": _float_out(self.compatibility_threshold),
            "species_details": [s.to_dict() for s in self.species_details],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationStats:
        return cls(
            generation=int(data["generation"]),
            population_size=int(data["population_size"]),
            species_count=int(data["species_count"]),
            best_fitness=_float_in(data["best_fitness"]),
            mean_fitness=_float_in(data["mean_fitness"]),
            median_fitness=_float_in(data["median_fitness"]),
            fitness_std_dev=_float_in(data["fitness_std_dev"]),
            compatibility_threshold=_float_in(data["compatibility_threshold"]),
            species_details=[SpeciesStats.from_dict(s) for s in data["species_details"]],
        )


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    if any(math.isnan(v) for v in values):
        raise ValueError("NaN in fitness values")
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2.0
    return ordered[mid]


def _std_dev(values: Sequence[float], mean: float) -> float:
    if not values:
        return 0.0
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def _aggregate(
    member_indices: Sequence[int], organism_stats: Sequence[Mapping[str, float]]
) -> dict[str, float]:
    totals: dict[str, float] = {}
    for idx in member_indices:
        for key, value in organism_stats[idx].items():
            totals[key] = totals.get(key, 0.0) + value
    return dict(sorted(totals.items()))


def build_generation_stats(
    generation: int,
    species: Sequence[Species],
    fitnesses: Sequence[float],
    organism_stats: Sequence[Mapping[str, float]],
    compatibility_threshold: float,
) -> GenerationStats:
    """Summarise fitnesses overall and per species, summing custom organism stats."""
    mean = _mean(fitnesses)
    details = []
    for s in species:
        member_fitnesses = [fitnesses[i] for i in s.member_indices]
        details.append(
            SpeciesStats(
                species_id=s.id,
                size=len(s.member_indices),
                best_fitness=max(member_fitnesses, default=-math.inf),
                mean_fitness=_mean(member_fitnesses),
                stagnation_counter=s.stagnation_counter,
                representative_nodes=len(s.representative.nodes),
                representative_connections=s.representative.connection_count(),
                aggregated_custom_stats=_aggregate(s.member_indices, organism_stats),
            )
        )

    return GenerationStats(
        generation=generation,
        population_size=len(fitnesses),
        species_count=len(species),
        best_fitness=max(fitnesses, default=-math.inf),
        mean_fitness=mean,
        median_fitness=_median(fitnesses),
        fitness_std_dev=_std_dev(fitnesses, mean),
        compatibility_threshold=compatibility_threshold,
        species_details=details,
    )


class EvolutionLogger(ABC):
    """Receiver of per-generation statistics."""

    @abstractmethod
    def log_generation(self, stats: GenerationStats) -> None:
        """Record the statistics of one generation."""

    def flush(self) -> None:
        """Write out anything still buffered."""


class NullLogger(EvolutionLogger):
    """Discards everything."""

    def log_generation(self, stats: GenerationStats) -> None:
        pass


class JsonFileLogger(EvolutionLogger):
    """Keeps every generation and rewrites a JSON array file periodically.

    Use as a context manager so that the file is written on exit.
    """

    def __init__(self, path: Union[str, os.PathLike], flush_interval: int = 10) -> None:
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        self.path = path
        self.flush_interval = flush_interval
        self.entries: list[GenerationStats] = []

    def _write(self) -> None:
        text = json.dumps([entry.to_dict() for entry in self.entries], indent=2)
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write(text)

    def log_generation(self, stats: GenerationStats) -> None:
        self.entries.append(stats)
        if len(self.entries) % self.flush_interval == 0:
            self._write()

    def flush(self) -> None:
        self._write()

    def __enter__(self) -> JsonFileLogger:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.flush()


@dataclass
class OrganismStats:
    """Named counters collected for a single organism."""

    stats: dict[str, float] = field(default_factory=dict)

    def increment(self, key: str, delta: float) -> None:
        self.stats[key] = self.stats.get(key, 0.0) + delta

    def set(self, key: str, value: float) -> None:
        self.stats[key] = value

    def as_dict(self) -> dict[str, float]:
        """The counters, ordered by name."""
        return dict(sorted(self.stats.items()))