import json
import math
import random

import pytest

from neatevo.genome import Genome
from neatevo.innovation import InnovationTracker
from neatevo.species import (
    RepresentativeStrategy,
    SpeciationConfig,
    Species,
    compute_offspring_counts,
    should_prune,
    speciate,
    update_stagnation,
)
from neatevo.types import DistanceCoefficients


def round_trip(value, cls):
    text = json.dumps(value.to_dict(), indent=2)
    restored = cls.from_dict(json.loads(text))
    assert json.dumps(restored.to_dict(), indent=2) == text
    return restored


def base_genome():
    return Genome.minimal_fully_connected(2, 1, InnovationTracker(), lambda _i, _o: 0.0)


def shifted(base, delta):
    genome = base.copy()
    for innovation in list(genome.innovations()):
        genome.perturb_weight(innovation, delta)
    return genome


def test_species_round_trip():
    species = Species(
        id=1,
        representative=base_genome(),
        member_indices=[0, 3, 7],
        stagnation_counter=5,
        best_fitness=12.3,
    )
    restored = round_trip(species, Species)
    assert restored.member_indices == [0, 3, 7]
    assert restored.best_fitness == 12.3
    assert restored.id == 1


def test_speciation_config_round_trip():
    restored = round_trip(SpeciationConfig(), SpeciationConfig)
    assert restored == SpeciationConfig()
    custom = SpeciationConfig(
        compatibility_threshold=0.1,
        distance_coefficients=DistanceCoefficients(2.0, 3.0, 0.5, 10),
        stagnation_limit=20,
        representative_strategy=RepresentativeStrategy.RANDOM_PER_GENERATION,
        pruning_interval=7,
    )
    assert round_trip(custom, SpeciationConfig) == custom


@pytest.mark.parametrize(
    "interval, generation, expected",
    [
        (None, 10, False),
        (0, 10, False),
        (5, 0, False),
        (5, 5, True),
        (5, 6, False),
        (5, 10, True),
    ],
)
def test_should_prune(interval, generation, expected):
    assert should_prune(generation, SpeciationConfig(pruning_interval=interval)) is expected


def stable_config(**overrides):
    return SpeciationConfig(
        species_count_lower_bound=0, species_count_upper_bound=100, **overrides
    )


def test_speciate_identical_genomes_form_one_species():
    base = base_genome()
    genomes = [base.copy() for _ in range(3)]
    species, next_id = speciate(genomes, [], stable_config(), 4, random.Random(0))
    assert [(s.id, s.member_indices) for s in species] == [(4, [0, 1, 2])]
    assert next_id == 5
    assert species[0].best_fitness == -math.inf


def test_speciate_keeps_previous_species_and_drops_empty_ones():
    base = base_genome()
    a, b = shifted(base, 0.0), shifted(base, 5.0)
    previous = [
        Species(id=7, representative=a, member_indices=[9], stagnation_counter=2, best_fitness=1.0),
        Species(id=8, representative=shifted(base, -50.0), member_indices=[3]),
    ]
    config = stable_config(compatibility_threshold=0.1)
    species, next_id = speciate([b, a], previous, config, 10, random.Random(0))

    assert [(s.id, s.member_indices) for s in species] == [(7, [1]), (10, [0])]
    assert species[0].stagnation_counter == 2
    assert species[0].best_fitness == 1.0
    assert next_id == 11
    assert previous[0].member_indices == [9]


def test_speciate_lowers_threshold_when_too_few_species():
    base = base_genome()
    config = SpeciationConfig()
    species, _ = speciate([base.copy() for _ in range(3)], [], config, 0, random.Random(0))
    assert config.compatibility_threshold_min < config.compatibility_threshold < 3.0
    assert len(species) == 1


def test_speciate_raises_threshold_when_too_many_species():
    base = base_genome()
    genomes = [shifted(base, w) for w in (0.0, 5.0, 10.0)]
    previous = [Species(id=i, representative=g) for i, g in enumerate(genomes)]
    config = SpeciationConfig(
        target_species_count=1, species_count_lower_bound=0, species_count_upper_bound=2
    )
    species, next_id = speciate(genomes, previous, config, 3, random.Random(0))
    assert config.compatibility_threshold > 3.0
    assert [(s.id, s.member_indices) for s in species] == [(0, [0, 1, 2])]
    assert next_id == 3


def test_random_representative_is_a_member():
    base = base_genome()
    genomes = [shifted(base, 0.0), shifted(base, 0.5)]
    config = stable_config(
        compatibility_threshold=10.0,
        representative_strategy=RepresentativeStrategy.RANDOM_PER_GENERATION,
    )
    species, _ = speciate(genomes, [], config, 0, random.Random(3))
    member_dicts = [g.to_dict() for g in genomes]
    assert len(species) == 1
    assert species[0].representative.to_dict() in member_dicts


def test_update_stagnation_resets_on_improvement_and_counts_otherwise():
    base = base_genome()
    improving = Species(id=0, representative=base, member_indices=[0, 1],
                        stagnation_counter=4, best_fitness=1.0)
    stalled = Species(id=1, representative=base, member_indices=[2],
                      stagnation_counter=4, best_fitness=5.0)
    update_stagnation([improving, stalled], [0.5, 3.0, 5.0])
    assert (improving.best_fitness, improving.stagnation_counter) == (3.0, 0)
    assert (stalled.best_fitness, stalled.stagnation_counter) == (5.0, 5)


def test_offspring_counts_follow_adjusted_fitness():
    base = base_genome()
    species = [
        Species(id=0, representative=base, member_indices=[0, 1]),
        Species(id=1, representative=base, member_indices=[2, 3]),
    ]
    counts = compute_offspring_counts(species, [1.0, 1.0, 2.0, 2.0], 9, 50)
    assert counts == [3, 6]


def test_offspring_counts_skip_stagnant_species():
    base = base_genome()
    species = [
        Species(id=0, representative=base, member_indices=[0], stagnation_counter=50),
        Species(id=1, representative=base, member_indices=[1]),
    ]
    assert compute_offspring_counts(species, [10.0, 1.0], 8, 50) == [0, 8]


def test_offspring_counts_split_evenly_without_positive_fitness():
    base = base_genome()
    species = [Species(id=i, representative=base, member_indices=[i]) for i in range(3)]
    counts = compute_offspring_counts(species, [0.0, -1.0, 0.0], 10, 50)
    assert counts == [4, 3, 3]
    assert sum(counts) == 10


def test_offspring_counts_all_stagnant_gives_nothing():
    base = base_genome()
    species = [Species(id=0, representative=base, member_indices=[0], stagnation_counter=3)]
    assert compute_offspring_counts(species, [1.0], 10, 3) == [0]


def test_offspring_counts_always_sum_to_population():
    base = base_genome()
    species = [Species(id=i, representative=base, member_indices=[i]) for i in range(3)]
    counts = compute_offspring_counts(species, [1.0, 1.0, 1.0], 10, 50)
    assert sum(counts) == 10