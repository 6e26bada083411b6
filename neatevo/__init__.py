"""NEAT genomes, crossover, speciation, reproduction, statistics and network activation."""

__version__ = "0.1.0"

__all__ = [
    "types",
    "innovation",
    "genome",
    "crossover",
    "distance",
    "pruning",
    "species",
    "population",
    "stats",
    "topology",
    "phenome",
]