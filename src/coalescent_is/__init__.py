"""
coalescent-is: exact and importance sampling likelihoods under the coalescent.

Exact sample probabilities by recursion over ancestral configurations, and
importance sampling over genealogies, for the infinite-alleles (KC64) and
infinite-sites (K69) mutation models.
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    CoalescentError,
    IncompatibleAllele,
    InvalidEventType,
    InvalidState,
    MissingTransitionsError,
    PrematureResultError,
    StaleCacheError,
    EmptyWeightSetError,
    CancellationError
)

# Precision
from .precision import PRECISION, ZERO, ONE, precise, to_decimal, is_close

# Events and models
from .events import EventType, Event, Genealogy
from .models import PopGenModel, KC64, K69

# Data and configurations
from .data import KC64Data, K69Data, parse_canonical_form
from .config import AncestralConfig
from .kc64 import KC64Config
from .gene_tree import Edge, Node, GeneTree
from .phylogeny import GusfieldAlgorithm, FourGameteViolation, four_gamete_test, PhylogenyAlgo
from .k69 import K69Config, Provenance

# Recursion
from .recursion import (
    Recursion,
    RecursionState,
    RecursionEvent,
    RecursionExeEvent,
    RecursionListener,
    RecursionExeListener,
    RecursionComputer
)
from .listeners import (
    ExactProbComputer,
    MultiExactProbComputer,
    ACCounter,
    ACBuilder,
    GenealogyCounter,
    GenealogyBuilder,
    FwdCountChecker,
    FocusedFwdCountChecker,
    CacheSizeTracker,
    run_recursion,
    exact_probability,
    exact_probabilities,
    count_configs,
    build_configs,
    count_genealogies,
    build_genealogies
)

# Proposals
from .proposals import (
    ElementSampler,
    GProposal,
    SDProposal,
    EGTProposal,
    HUWProposal,
    ExactProposal,
    SingletonExactProposal,
    ExactDelegateProposal,
    CompositeProposal,
    MultiProposal,
    NIDMultiProposal,
    EGTMultiProposal,
    sd_proposal,
    egt_proposal,
    huw_proposal,
    sd_huw_proposal,
    new_proposal,
    exact_huw_proposal,
    exact_delegate_proposal,
    egt_multi,
    egt_multi_default,
    egt_multi_improved,
    sd_multi,
    huw_multi
)

# Sampling
from .sampler import (
    Sampler,
    MultiSampler,
    SamplerConfig,
    SamplerResults,
    MultiSamplerResults,
    RunningStatistics,
    parse_duration,
    format_duration,
    new_sampler,
    new_multi_sampler,
    run_sampler,
    run_multi_sampler
)

# Simulation
from .simulate import (
    simulate_tree_sequence,
    k69_data_from_tree_sequence,
    kc64_data_from_tree_sequence,
    simulate_k69_data,
    simulate_kc64_data
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "CoalescentError",
    "IncompatibleAllele",
    "InvalidEventType",
    "InvalidState",
    "MissingTransitionsError",
    "PrematureResultError",
    "StaleCacheError",
    "EmptyWeightSetError",
    "CancellationError",
    # Precision
    "PRECISION",
    "ZERO",
    "ONE",
    "precise",
    "to_decimal",
    "is_close",
    # Events and models
    "EventType",
    "Event",
    "Genealogy",
    "PopGenModel",
    "KC64",
    "K69",
    # Data and configurations
    "KC64Data",
    "K69Data",
    "parse_canonical_form",
    "AncestralConfig",
    "KC64Config",
    "Edge",
    "Node",
    "GeneTree",
    "GusfieldAlgorithm",
    "FourGameteViolation",
    "four_gamete_test",
    "PhylogenyAlgo",
    "K69Config",
    "Provenance",
    # Recursion
    "Recursion",
    "RecursionState",
    "RecursionEvent",
    "RecursionExeEvent",
    "RecursionListener",
    "RecursionExeListener",
    "RecursionComputer",
    "ExactProbComputer",
    "MultiExactProbComputer",
    "ACCounter",
    "ACBuilder",
    "GenealogyCounter",
    "GenealogyBuilder",
    "FwdCountChecker",
    "FocusedFwdCountChecker",
    "CacheSizeTracker",
    "run_recursion",
    "exact_probability",
    "exact_probabilities",
    "count_configs",
    "build_configs",
    "count_genealogies",
    "build_genealogies",
    # Proposals
    "ElementSampler",
    "GProposal",
    "SDProposal",
    "EGTProposal",
    "HUWProposal",
    "ExactProposal",
    "SingletonExactProposal",
    "ExactDelegateProposal",
    "CompositeProposal",
    "MultiProposal",
    "NIDMultiProposal",
    "EGTMultiProposal",
    "sd_proposal",
    "egt_proposal",
    "huw_proposal",
    "sd_huw_proposal",
    "new_proposal",
    "exact_huw_proposal",
    "exact_delegate_proposal",
    "egt_multi",
    "egt_multi_default",
    "egt_multi_improved",
    "sd_multi",
    "huw_multi",
    # Sampling
    "Sampler",
    "MultiSampler",
    "SamplerConfig",
    "SamplerResults",
    "MultiSamplerResults",
    "RunningStatistics",
    "parse_duration",
    "format_duration",
    "new_sampler",
    "new_multi_sampler",
    "run_sampler",
    "run_multi_sampler",
    # Simulation
    "simulate_tree_sequence",
    "k69_data_from_tree_sequence",
    "kc64_data_from_tree_sequence",
    "simulate_k69_data",
    "simulate_kc64_data",
]
