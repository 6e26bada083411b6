import json
import random

import pytest

from neatevo.genome import Genome
from neatevo.innovation import InnovationTracker
from neatevo.population import ReproductionConfig, reproduce_species
from neatevo.species import Species


def _population(n=6, seed=1):
    tracker = InnovationTracker()
    genomes = Genome.random_fully_connected_population(n, 2, 1, tracker, random.Random(seed))
    fitnesses = [float(i) * 1.5 + 0.25 for i in range(n)]
    species = Species(id=1, representative=genomes[0], member_indices=list(range(n)))
    return tracker, genomes, fitnesses, species


def _quiet_config(**overrides):
    values = dict(
        mutation_rate_perturb_weight=0.0,
        mutation_rate_add_connection=0.0,
        mutation_rate_add_node=0.0,
        mutation_rate_disable_connection=0.0,
        crossover_rate=0.0,
        elitism_count=0,
    )
    values.update(overrides)
    return ReproductionConfig(**values)


def test_reproduction_config_round_trip():
    config = ReproductionConfig()
    text = json.dumps(config.to_dict(), indent=2)
    restored = ReproductionConfig.from_dict(json.loads(text))
    assert restored == config
    assert json.dumps(restored.to_dict(), indent=2) == text


def test_reproduction_config_defaults():
    config = ReproductionConfig()
    assert config.mutation_rate_perturb_weight == 0.8
    assert config.mutation_rate_add_connection == 0.05
    assert config.mutation_rate_add_node == 0.03
    assert config.mutation_rate_disable_connection == 0.01
    assert config.weight_perturb_magnitude == 0.5
    assert config.crossover_rate == 0.75
    assert config.elitism_count == 1
    assert config.interspecies_crossover_rate == 0.001


def test_zero_offspring_gives_empty_list():
    tracker, genomes, fitnesses, species = _population()
    out = reproduce_species(
        species, genomes, fitnesses, 0, tracker, ReproductionConfig(), random.Random(0)
    )
    assert out == []


def test_empty_species_gives_empty_list():
    tracker, genomes, fitnesses, _ = _population()
    empty = Species(id=2, representative=genomes[0], member_indices=[])
    out = reproduce_species(
        empty, genomes, fitnesses, 4, tracker, ReproductionConfig(), random.Random(0)
    )
    assert out == []


@pytest.mark.parametrize("count", [1, 5, 12])
def test_produces_requested_number_of_offspring(count):
    tracker, genomes, fitnesses, species = _population()
    out = reproduce_species(
        species, genomes, fitnesses, count, tracker, ReproductionConfig(), random.Random(3)
    )
    assert len(out) == count
    assert all(g.n_inputs == 2 and g.n_outputs == 1 for g in out)


def test_elites_are_fittest_members_unchanged():
    tracker, genomes, fitnesses, species = _population()
    config = ReproductionConfig(elitism_count=2)
    out = reproduce_species(species, genomes, fitnesses, 5, tracker, config, random.Random(7))
    assert out[0].to_dict() == genomes[5].to_dict()
    assert out[1].to_dict() == genomes[4].to_dict()
    assert out[0] is not genomes[5]


def test_elitism_capped_by_offspring_count():
    tracker, genomes, fitnesses, species = _population()
    config = _quiet_config(elitism_count=10)
    out = reproduce_species(species, genomes, fitnesses, 2, tracker, config, random.Random(7))
    assert [g.to_dict() for g in out] == [genomes[5].to_dict(), genomes[4].to_dict()]


def test_offspring_are_independent_copies():
    tracker, genomes, fitnesses, species = _population()
    config = ReproductionConfig(elitism_count=1)
    out = reproduce_species(species, genomes, fitnesses, 1, tracker, config, random.Random(7))
    first = next(out[0].innovations())
    original = genomes[5].connection(first).weight
    out[0].perturb_weight(first, 10.0)
    assert genomes[5].connection(first).weight == original


def test_without_variation_children_are_copies_of_members():
    tracker, genomes, fitnesses, species = _population()
    originals = [g.to_dict() for g in genomes]
    out = reproduce_species(
        species, genomes, fitnesses, 8, tracker, _quiet_config(), random.Random(11)
    )
    assert all(child.to_dict() in originals for child in out)


def test_crossover_only_inherits_parent_genes():
    tracker, genomes, fitnesses, species = _population()
    config = _quiet_config(crossover_rate=1.0)
    out = reproduce_species(species, genomes, fitnesses, 10, tracker, config, random.Random(5))
    for child in out:
        for innovation, gene in child.connections_by_innovation.items():
            parent_weights = {
                g.connections_by_innovation[innovation].weight
                for g in genomes
                if innovation in g.connections_by_innovation
            }
            assert gene.weight in parent_weights
        assert set(child.nodes) <= set(genomes[0].nodes)


def test_add_node_always_grows_every_child():
    tracker, genomes, fitnesses, species = _population()
    config = _quiet_config(mutation_rate_add_node=1.0)
    before_node_id = tracker.next_node_id
    out = reproduce_species(species, genomes, fitnesses, 4, tracker, config, random.Random(2))
    expected = genomes[0].connection_count() + 2
    assert all(child.connection_count() == expected for child in out)
    assert tracker.next_node_id == before_node_id + 4


def test_single_member_species_uses_mutation_only():
    tracker, genomes, fitnesses, _ = _population()
    lone = Species(id=3, representative=genomes[2], member_indices=[2])
    config = _quiet_config(crossover_rate=1.0)
    out = reproduce_species(lone, genomes, fitnesses, 3, tracker, config, random.Random(9))
    assert [g.to_dict() for g in out] == [genomes[2].to_dict()] * 3