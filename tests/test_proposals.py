"""Tests for genealogy proposals."""

import time
from decimal import Decimal, localcontext

import pytest

from coalescent_is import (
    K69,
    CompositeProposal,
    EGTMultiProposal,
    EGTProposal,
    ElementSampler,
    EmptyWeightSetError,
    EventType,
    ExactProposal,
    HUWProposal,
    InvalidState,
    NIDMultiProposal,
    SDProposal,
    StaleCacheError,
    build_genealogies,
    egt_multi_default,
    exact_delegate_proposal,
    exact_huw_proposal,
    exact_probability,
    is_close,
    new_proposal,
    sd_huw_proposal,
)
from coalescent_is.precision import CONTEXT, ONE, divide


def proposal_probability(proposal, genealogy):
    """Probability of a genealogy from fresh step distributions."""
    with localcontext(CONTEXT):
        result = ONE
        for event in genealogy:
            result *= proposal.step_probability(event.pre, event.allele, event.event_type)
        return result


@pytest.mark.parametrize("make", [SDProposal, EGTProposal])
def test_kc64_proposal_is_distribution(kc64_sample, make):
    """Proposal probabilities over all genealogies sum to one."""
    proposal = make(kc64_sample)
    with localcontext(CONTEXT):
        total = sum(proposal_probability(proposal, g) for g in build_genealogies(kc64_sample))
    assert is_close(total, ONE)


@pytest.mark.parametrize("make", [SDProposal, EGTProposal, HUWProposal, sd_huw_proposal])
def test_k69_proposal_is_distribution(k69_sample, make):
    """Proposal probabilities over all genealogies sum to one."""
    proposal = make(k69_sample)
    with localcontext(CONTEXT):
        total = sum(proposal_probability(proposal, g) for g in build_genealogies(k69_sample))
    assert is_close(total, ONE)


def test_element_sampler():
    """Probabilities are normalized weights."""
    elements = [(2, EventType.COALESCENT), (1, EventType.MUTATION)]
    sampler = ElementSampler(elements, [Decimal(3), Decimal(1)])

    assert sampler.weight_sum == 4
    assert sampler.probability_of(1, EventType.MUTATION) == Decimal("0.25")
    with pytest.raises(InvalidState):
        sampler.probability
    with pytest.raises(StaleCacheError):
        sampler.probability_of(3, EventType.COALESCENT)


def test_empty_weight_set():
    """Empty and all-zero weight sets cannot be sampled."""
    with pytest.raises(EmptyWeightSetError):
        ElementSampler([], [])
    with pytest.raises(EmptyWeightSetError):
        ElementSampler([(1, EventType.MUTATION)], [Decimal(0)])


def test_sample_reaches_mrca(k69_sample):
    """Draws are genealogies from the sample to the MRCA."""
    proposal = SDProposal(k69_sample)
    proposal.set_random_seed(7)
    for _ in range(10):
        genealogy = proposal.sample()
        assert genealogy.sample == k69_sample
        assert genealogy.mrca.is_mrca()
        assert len(genealogy) == k69_sample.events_to_mrca()


def test_seeded_draws_repeat(k69_sample):
    """The same seed gives the same draws."""
    first, second = SDProposal(k69_sample), SDProposal(k69_sample)
    first.set_random_seed(11)
    second.set_random_seed(11)
    for _ in range(5):
        assert first.sample().event_sequence() == second.sample().event_sequence()


def test_probability_needs_last_draw(k69_sample):
    """Proposal probabilities are only known for the last draw."""
    proposal = SDProposal(k69_sample)
    genealogy = build_genealogies(k69_sample)[0]
    with pytest.raises(StaleCacheError):
        proposal.probability(genealogy)


def test_factor_is_target_over_proposal(k69_sample):
    """Importance weights are target probability over proposal probability."""
    for proposal in (SDProposal(k69_sample), EGTProposal(k69_sample), HUWProposal(k69_sample)):
        proposal.set_random_seed(3)
        factor = proposal.factor()
        for _ in range(5):
            genealogy = proposal.sample()
            q = proposal.probability(genealogy)
            assert is_close(q, proposal_probability(proposal, genealogy))
            assert is_close(factor(genealogy), divide(genealogy.probability(), q))


def test_exact_proposal_has_constant_weight(kc64_sample, k69_sample):
    """Exact conditional weights make every importance weight the exact probability."""
    for sample in (kc64_sample, k69_sample):
        proposal = ExactProposal(sample)
        proposal.set_random_seed(5)
        proposal.init()
        exact = exact_probability(sample)
        factor = proposal.factor()
        for _ in range(5):
            assert is_close(factor(proposal.sample()), exact, "1e-40")
        proposal.clear()


def test_exact_proposal_without_delegate(k69_sample):
    """Configurations outside the exact run need a delegate."""
    proposal = ExactProposal(k69_sample, exact_sample=k69_sample.of_singleton())
    proposal.init()
    with pytest.raises(InvalidState):
        proposal.sample()


def test_new_proposal(k69_sample):
    """Projected singleton weights produce valid draws."""
    proposal = new_proposal(k69_sample)
    proposal.set_random_seed(9)
    proposal.init()
    factor = proposal.factor()
    for _ in range(5):
        assert factor(proposal.sample()) > 0
    proposal.clear()


def test_new_proposal_step_distribution(k69_sample):
    """Projected singleton weights give the exact conditional where a doubleton remains."""
    proposal = new_proposal(k69_sample)
    proposal.init()
    distribution = proposal.step_distribution(k69_sample)
    huw = HUWProposal(k69_sample).step_distribution(k69_sample)

    by_type = {event_type: p for (_, event_type), p in distribution.items()}
    assert is_close(by_type[EventType.COALESCENT], divide(16, 43))
    assert is_close(by_type[EventType.MUTATION], divide(27, 43))
    assert not is_close(sum(p for (_, t), p in huw.items() if t == EventType.COALESCENT),
                        by_type[EventType.COALESCENT], "1e-3")

    with localcontext(CONTEXT):
        total = sum(proposal_probability(proposal, g) for g in build_genealogies(k69_sample))
    assert is_close(total, ONE)
    proposal.clear()


def test_new_proposal_needs_init(k69_sample):
    """Projected weights need the singleton recursion."""
    with pytest.raises(InvalidState):
        new_proposal(k69_sample).sample()


def test_coalesce_first_prob(k69_sample):
    """Duplicates coalescing first: (n - k)! over prod (m - 1 + theta)."""
    proposal = new_proposal(k69_sample)
    assert is_close(proposal.coalesce_first_prob(k69_sample), divide(1, 4))
    assert proposal.coalesce_first_prob(k69_sample.of_singleton()) == ONE


@pytest.mark.parametrize("make", [HUWProposal, sd_huw_proposal, new_proposal, exact_huw_proposal])
def test_infinite_sites_proposals_reject_kc64(kc64_sample, make):
    """Gene tree proposals need infinite-sites samples."""
    with pytest.raises(ValueError):
        make(kc64_sample)


def test_exact_huw_proposal(k69_sample):
    """Exact weights inside the singleton recursion, HUW weights elsewhere."""
    proposal = exact_huw_proposal(k69_sample)
    proposal.set_random_seed(9)
    proposal.init()
    assert proposal.exact_value(k69_sample) is None
    assert proposal.exact_value(k69_sample.of_singleton()) is not None
    factor = proposal.factor()
    for _ in range(5):
        assert factor(proposal.sample()) > 0
    proposal.clear()


def test_exact_delegate_sample(k69_sample):
    """The exact run starts max_exact_events events from the MRCA."""
    proposal = exact_delegate_proposal(k69_sample, max_exact_events=1)
    proposal.set_random_seed(1)
    proposal.delegate.set_random_seed(1)
    proposal.init()
    try:
        assert proposal.exact_sample.events_to_mrca() == 1
        deadline = time.monotonic() + 30
        while not proposal.warmed_up and time.monotonic() < deadline:
            time.sleep(0.01)
        assert proposal.warmed_up
        factor = proposal.factor()
        for _ in range(5):
            assert factor(proposal.sample()) > 0
    finally:
        proposal.clear()
    assert not proposal.warmed_up


def test_exact_delegate_small_sample(k69_pair):
    """A sample within reach is solved from its singleton version."""
    proposal = exact_delegate_proposal(k69_pair)
    proposal.init()
    try:
        assert proposal.exact_sample == k69_pair.of_singleton()
    finally:
        proposal.clear()


def test_composite_selects_by_key(k69_sample):
    """Unknown sub-proposal keys are rejected."""
    proposal = CompositeProposal(k69_sample, {"SD": SDProposal(k69_sample)}, lambda config: "HUW")
    with pytest.raises(ValueError):
        proposal.sample()


def test_huw_p(k69_sample):
    """Closed-form probabilities of HUW at theta = 1."""
    proposal = HUWProposal(k69_sample)
    assert is_close(proposal.p(2, 1), ONE)
    assert is_close(proposal.p(3, 1), divide(4, 7))
    assert proposal.p(3, 2) == ONE
    proposal.clear()
    assert is_close(proposal.p(3, 1), divide(4, 7))


def test_with_sample(k69_sample, k69_pair):
    """Copies draw for another sample with the same weighting."""
    proposal = HUWProposal(k69_sample).with_sample(k69_pair)
    assert isinstance(proposal, HUWProposal)
    assert proposal.sample_config == k69_pair
    assert proposal.sample().sample == k69_pair


def test_egt_multi_weights(k69_sample):
    """Closed-form multi-point weights equal target over proposal probability."""
    models = [K69(1.0), K69(2.0), K69(0.5)]
    multi = EGTMultiProposal(k69_sample, models)
    multi.set_random_seed(2)
    factor = multi.factor()
    for _ in range(5):
        genealogies = multi.sample()
        q = multi.base.probability(genealogies[0])
        for model, weight in zip(models, factor(genealogies)):
            assert is_close(weight, divide(genealogies[0].probability(model=model), q))


def test_nid_multi_reuses_one_draw(k69_sample):
    """NID multi proposals reweight a single draw."""
    multi = NIDMultiProposal(SDProposal(k69_sample), [K69(1.0), K69(2.0)])
    multi.set_random_seed(4)
    genealogies = multi.sample()
    assert genealogies[0] is genealogies[1]
    weights = multi.factor()(genealogies)
    assert len(weights) == 2
    assert weights[0] != weights[1]


def test_independent_multi(k69_sample):
    """Independent multi proposals draw per model point."""
    models = [K69(1.0), K69(2.0)]
    multi = egt_multi_default(k69_sample, models)
    multi.set_random_seed(6)
    genealogies = multi.sample()
    assert [g.model for g in genealogies] == models
    assert all(w > 0 for w in multi.factor()(genealogies))
