from enum import IntEnum
from typing import NamedTuple

from tokensale.exception import InvalidPhaseTransition


class Phase(IntEnum):
    """Phases of the sale. A sale starts in PRIVATE and FINISHED is terminal."""

    PRIVATE = 0
    PRE_SALE = 1
    MAIN_SALE = 2
    FINISHED = 3


class PhaseRules(NamedTuple):
    purchases: bool
    reservations: bool
    transfers: bool


PHASE_RULES: dict[Phase, PhaseRules] = {
    Phase.PRIVATE: PhaseRules(purchases=False, reservations=True, transfers=False),
    Phase.PRE_SALE: PhaseRules(purchases=True, reservations=True, transfers=False),
    Phase.MAIN_SALE: PhaseRules(purchases=True, reservations=False, transfers=False),
    Phase.FINISHED: PhaseRules(purchases=False, reservations=False, transfers=True),
}

# transition name -> (allowed source phases, target phase)
TRANSITIONS: dict[str, tuple[frozenset[Phase], Phase]] = {
    "start_pre_sale": (frozenset({Phase.PRIVATE, Phase.MAIN_SALE}), Phase.PRE_SALE),
    "start_main_sale": (frozenset({Phase.PRE_SALE}), Phase.MAIN_SALE),
    "go_back_to_private_sale": (frozenset({Phase.PRE_SALE}), Phase.PRIVATE),
    "go_back_to_pre_sale": (frozenset({Phase.MAIN_SALE}), Phase.PRE_SALE),
}


def next_phase(current: Phase, transition: str) -> Phase:
    """Return the phase reached from `current` by `transition`."""
    sources, target = TRANSITIONS[transition]
    if current not in sources:
        raise InvalidPhaseTransition(f"Cannot {transition} from {current.name}")
    return target


def is_private_sale_running(phase: Phase) -> bool:
    return phase == Phase.PRIVATE


def is_pre_sale_running(phase: Phase) -> bool:
    return phase == Phase.PRE_SALE


def is_main_sale_running(phase: Phase) -> bool:
    return phase == Phase.MAIN_SALE


def is_token_sale_running(phase: Phase) -> bool:
    return PHASE_RULES[phase].purchases


def has_ended(phase: Phase) -> bool:
    return phase == Phase.FINISHED
