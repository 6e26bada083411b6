# neatevo

Building blocks for NEAT (NeuroEvolution of Augmenting Topologies), using
only the Python standard library.

| Module | What it holds |
| --- | --- |
| `neatevo.types` | `NodeKind`, `ParentFitness`, `ConnectionKey`, `ConnectionGene`, `DistanceCoefficients` and the `GenomeError` exceptions |
| `neatevo.innovation` | `InnovationTracker`, which hands out innovation numbers and hidden node ids (`fork` / `join` split and merge ranges) |
| `neatevo.genome` | `Genome` and the mutations `AddConnection`, `AddNode`, `PerturbWeight`, `DisableConnection` |
| `neatevo.crossover` | `aligned_by_innovation`, `CrossoverPolicy`, `crossover_with_policy` |
| `neatevo.distance` | `genetic_distance` |
| `neatevo.pruning` | `prune`, `prune_population` |
| `neatevo.species` | `Species`, `SpeciationConfig`, `RepresentativeStrategy`, `speciate`, `update_stagnation`, `compute_offspring_counts`, `should_prune` |
| `neatevo.population` | `ReproductionConfig`, `reproduce_species` |
| `neatevo.stats` | `GenerationStats`, `SpeciesStats`, `build_generation_stats`, `OrganismStats`, `EvolutionLogger`, `NullLogger`, `JsonFileLogger` |
| `neatevo.topology` | strongly connected components, component ordering, activation plans and reachability |
| `neatevo.phenome` | `Phenome`, `ActivationConfig`, `PhenomeError`, `InputArityMismatch` |

## Installation

```
pip install .
```

Python 3.10 or newer is required.

## Quick start

```python
from neatevo.genome import AddNode, Genome
from neatevo.innovation import InnovationTracker
from neatevo.phenome import Phenome

tracker = InnovationTracker()
genome = Genome.minimal_fully_connected(2, 1, tracker, lambda i, o: 1.0)

first = next(genome.innovations())
genome = genome.apply_mutations(tracker, [AddNode(split_innovation=first)])

net = Phenome.from_genome(genome)
print(net.activate([1.0, 3.0]))   # [4.0]
```

`Genome` offers both in-place edits (`add_connection`, `add_node`,
`perturb_weight`, `disable_connection`, `apply_mutation_in_place`) and
copying variants (`with_added_connection`, `with_added_node`,
`with_perturbed_weight`, `with_disabled_connection`, `apply_mutation`,
`apply_mutations`). Adding a connection that exists but is disabled
re-enables it with the new weight.

Edits that are not allowed raise subclasses of `GenomeError` from
`neatevo.types`: `SelfLoop`, `MissingNode`, `InvalidOutputNode`,
`DuplicateConnection`, `UnknownInnovation`, `ConnectionAlreadyDisabled`;
crossover of incompatible parents raises `MismatchedIo` or
`MismatchedNodeKind`. Activating a phenome with the wrong number of inputs
raises `InputArityMismatch`.

## Activation

`Phenome` groups enabled connections into strongly connected components and
evaluates them in topological order with ReLU. A component that forms a loop
is iterated up to `ActivationConfig.recurrent_iterations` times, stopping
early once no value changes by more than `recurrent_epsilon`. Nodes that are
not on a path from an input to an output are skipped.

With `logging_enabled` (or `set_logging_enabled(True)`), each `activate`
call records its steps; read them with `audit_log()` or `take_audit_log()`.

```python
print(net.to_mermaid(include_disabled=False, collapse_components=False))
```

`to_mermaid` renders a Mermaid flowchart; `collapse_components=True` draws
one box per component.

## One evolution step

```python
import random

from neatevo.genome import Genome
from neatevo.innovation import InnovationTracker
from neatevo.population import ReproductionConfig, reproduce_species
from neatevo.species import (
    SpeciationConfig,
    compute_offspring_counts,
    speciate,
    update_stagnation,
)
from neatevo.stats import build_generation_stats

rng = random.Random(1)
tracker = InnovationTracker()
genomes = Genome.random_fully_connected_population(50, 3, 1, tracker, rng)
fitnesses = [rng.random() for _ in genomes]

spec_config = SpeciationConfig()
species, next_id = speciate(genomes, [], spec_config, 0, rng)
update_stagnation(species, fitnesses)
counts = compute_offspring_counts(
    species, fitnesses, len(genomes), spec_config.stagnation_limit
)

repro = ReproductionConfig()
children = []
for s, n in zip(species, counts):
    children.extend(reproduce_species(s, genomes, fitnesses, n, tracker, repro, rng))

stats = build_generation_stats(
    0, species, fitnesses, [{} for _ in genomes], spec_config.compatibility_threshold
)
```

`speciate` adjusts `spec_config.compatibility_threshold` in place when the
previous species count lies outside its bounds, and returns the non-empty
species together with the next unused species id.

## Statistics and logging

`JsonFileLogger(path, flush_interval=10)` keeps every `GenerationStats` it
is given and rewrites `path` as a JSON array every `flush_interval`
generations and on `flush()`. Used as a context manager it writes the file
on exit. `OrganismStats` collects named counters for one organism; pass
their `as_dict()` values to `build_generation_stats` to have them summed
per species.

## Serialisation

Genomes, trackers, species, configuration objects, statistics and
`GenomeError` instances offer `to_dict()` / `from_dict()`, producing plain
data that the standard `json` module can store.

## What it does not do

The package supplies the parts of an evolutionary run, not the run itself:
there is no loop that drives generations, no fitness evaluation or match
scheduling, no checkpoint files and no command-line program. Fitness values
are computed by your own code and passed in.

## Running the tests

```
pip install .[test]
pytest
```