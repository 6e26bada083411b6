import pytest

from neatevo.crossover import CrossoverPolicy, aligned_by_innovation, crossover_with_policy
from neatevo.genome import Genome
from neatevo.innovation import InnovationTracker
from neatevo.types import (
    ConnectionKey,
    MismatchedIo,
    MismatchedNodeKind,
    NodeKind,
    ParentFitness,
)


class FixedPolicy(CrossoverPolicy):
    def __init__(self, left_matching, left_equal_unmatched, enable_disabled):
        self.left_matching = left_matching
        self.left_equal_unmatched = left_equal_unmatched
        self.enable_disabled = enable_disabled

    def choose_left_matching(self, left, right):
        return self.left_matching

    def choose_left_when_equal_for_unmatched(self):
        return self.left_equal_unmatched

    def enable_if_either_parent_disabled(self):
        return self.enable_disabled


def crossover_fixed(left, right, fitness, left_matching, left_equal_unmatched, enable_disabled):
    policy = FixedPolicy(left_matching, left_equal_unmatched, enable_disabled)
    return crossover_with_policy(left, right, fitness, policy)


def base_genome(tracker):
    return Genome.minimal_fully_connected(2, 1, tracker, lambda _i, _o: 0.5)


def count_alignment(left, right):
    both = only_left = only_right = 0
    for l_gene, r_gene in aligned_by_innovation(left, right):
        if l_gene is not None and r_gene is not None:
            both += 1
        elif l_gene is not None:
            only_left += 1
        else:
            only_right += 1
    return both, only_left, only_right


def test_alignment_by_innovation_is_correct():
    t = InnovationTracker()
    g1 = base_genome(t)
    first = next(g1.innovations())
    g2 = g1.with_perturbed_weight(first, 1.0)
    assert count_alignment(g1, g2) == (2, 0, 0)


def test_alignment_reports_unmatched_sides():
    t = InnovationTracker()
    base = base_genome(t)
    split = base.with_added_node(t, next(base.innovations()))
    assert count_alignment(split, base) == (2, 2, 0)
    assert count_alignment(base, split) == (2, 0, 2)


def test_alignment_is_in_innovation_order():
    t = InnovationTracker()
    base = base_genome(t)
    split = base.with_added_node(t, next(base.innovations()))
    order = [(l or r).innovation for l, r in aligned_by_innovation(base, split)]
    assert order == sorted(order)
    assert len(order) == 4


def test_crossover_inherits_matching_and_fitter_unmatched_genes():
    t = InnovationTracker()
    base = Genome.minimal_fully_connected(2, 2, t, lambda _i, _o: 0.0)
    first = next(base.innovations())
    left = base.with_added_connection(t, 2, 3, 0.9)
    right = base.with_perturbed_weight(first, -0.2)

    child = crossover_fixed(left, right, ParentFitness.LEFT, False, False, True)

    assert child.connection_count() == left.connection_count()
    assert ConnectionKey(2, 3) in child.connection_to_innovation
    assert child.connection(first).weight == pytest.approx(-0.2, abs=1e-12)


def test_crossover_respects_disabled_gene_policy():
    t = InnovationTracker()
    base = base_genome(t)
    split = next(base.innovations())
    left = base.with_added_node(t, split)
    right = base.copy()

    child_disabled = crossover_fixed(left, right, ParentFitness.EQUAL, False, True, False)
    assert child_disabled.connection(split).enabled is False

    child_enabled = crossover_fixed(left, right, ParentFitness.EQUAL, False, True, True)
    assert child_enabled.connection(split).enabled is True


def test_crossover_right_fitter_drops_left_unmatched():
    t = InnovationTracker()
    base = base_genome(t)
    left = base.with_added_node(t, next(base.innovations()))
    child = crossover_fixed(left, base, ParentFitness.RIGHT, True, True, True)
    assert sorted(child.innovations()) == sorted(base.innovations())


def test_crossover_equal_fitness_uses_policy_for_unmatched():
    t = InnovationTracker()
    base = base_genome(t)
    left = base.with_added_node(t, next(base.innovations()))
    take_left = crossover_fixed(left, base, ParentFitness.EQUAL, True, True, True)
    take_right = crossover_fixed(left, base, ParentFitness.EQUAL, True, False, True)
    assert take_left.connection_count() == 4
    assert take_right.connection_count() == 2


def test_crossover_merges_nodes_of_both_parents():
    t = InnovationTracker()
    base = base_genome(t)
    left = base.with_added_node(t, next(base.innovations()))
    child = crossover_fixed(base, left, ParentFitness.RIGHT, True, True, True)
    assert list(child.nodes) == [0, 1, 2, 3]
    assert child.nodes[3] is NodeKind.HIDDEN


def test_crossover_does_not_share_genes_with_parents():
    t = InnovationTracker()
    base = base_genome(t)
    child = crossover_fixed(base, base, ParentFitness.EQUAL, True, True, True)
    first = next(child.innovations())
    child.perturb_weight(first, 1.0)
    assert base.connection(first).weight == 0.5


def test_crossover_rejects_mismatched_io():
    left = Genome.minimal_fully_connected(2, 1, InnovationTracker(), lambda _i, _o: 0.0)
    right = Genome.minimal_fully_connected(3, 1, InnovationTracker(), lambda _i, _o: 0.0)
    with pytest.raises(MismatchedIo) as info:
        crossover_fixed(left, right, ParentFitness.EQUAL, True, True, True)
    assert info.value == MismatchedIo(2, 1, 3, 1)


def test_crossover_rejects_mismatched_node_kind():
    left = Genome(2, 1, {0: NodeKind.SENSOR, 1: NodeKind.SENSOR, 2: NodeKind.OUTPUT})
    right = Genome(2, 1, {0: NodeKind.SENSOR, 1: NodeKind.HIDDEN, 2: NodeKind.OUTPUT})
    with pytest.raises(MismatchedNodeKind) as info:
        crossover_fixed(left, right, ParentFitness.EQUAL, True, True, True)
    assert info.value == MismatchedNodeKind(1, NodeKind.SENSOR, NodeKind.HIDDEN)