"""Tests for the deposit lifecycle graph (escrow_kernel.domain.lifecycle)."""

import pytest

from escrow_kernel.domain.lifecycle import (
    DEPOSIT_LIFECYCLE,
    LeaseAction,
    LeaseState,
    is_terminal,
    moves_funds,
    next_state,
)
from escrow_kernel.domain.workflow import Transition, Workflow

S = LeaseState
A = LeaseAction

EXPECTED = {
    (S.CREATED, A.FUND_DEPOSIT): S.FUNDED,
    (S.CREATED, A.SUBMIT_INSPECTION): S.INSPECTION_SUBMITTED,
    (S.FUNDED, A.SUBMIT_INSPECTION): S.INSPECTION_SUBMITTED,
    (S.CREATED, A.RAISE_CLAIM): S.CLAIM_RAISED,
    (S.FUNDED, A.RAISE_CLAIM): S.CLAIM_RAISED,
    (S.INSPECTION_SUBMITTED, A.RAISE_CLAIM): S.CLAIM_RAISED,
    (S.CLAIM_RAISED, A.RESOLVE_CLAIM): S.RESOLVED,
    (S.CREATED, A.FINALIZE_AFTER_WINDOW): S.FINALIZED,
    (S.FUNDED, A.FINALIZE_AFTER_WINDOW): S.FINALIZED,
    (S.INSPECTION_SUBMITTED, A.FINALIZE_AFTER_WINDOW): S.FINALIZED,
    (S.CREATED, A.TENANT_RELEASE_TO_LANDLORD): S.FINALIZED,
    (S.FUNDED, A.TENANT_RELEASE_TO_LANDLORD): S.FINALIZED,
    (S.INSPECTION_SUBMITTED, A.TENANT_RELEASE_TO_LANDLORD): S.FINALIZED,
}

_ORDER = [S.CREATED, S.FUNDED, S.INSPECTION_SUBMITTED, S.CLAIM_RAISED, S.RESOLVED, S.FINALIZED]


class TestTransitionGraph:
    @pytest.mark.parametrize("state", list(LeaseState))
    @pytest.mark.parametrize("action", list(LeaseAction))
    def test_graph_matches_table(self, state, action):
        assert next_state(state, action) == EXPECTED.get((state, action))

    def test_initial_and_terminal_states(self):
        assert DEPOSIT_LIFECYCLE.initial_state == S.CREATED.value
        assert is_terminal(S.RESOLVED)
        assert is_terminal(S.FINALIZED)
        assert not is_terminal(S.CLAIM_RAISED)

    def test_state_only_moves_forward(self):
        for t in DEPOSIT_LIFECYCLE.transitions:
            assert _ORDER.index(S(t.to_state)) > _ORDER.index(S(t.from_state))

    def test_terminal_states_have_no_exits(self):
        for terminal in (S.RESOLVED, S.FINALIZED):
            for action in LeaseAction:
                assert next_state(terminal, action) is None

    def test_fund_moving_actions(self):
        assert {a for a in LeaseAction if moves_funds(a)} == {
            A.FUND_DEPOSIT,
            A.RESOLVE_CLAIM,
            A.FINALIZE_AFTER_WINDOW,
            A.TENANT_RELEASE_TO_LANDLORD,
        }

    def test_sources_for(self):
        assert set(DEPOSIT_LIFECYCLE.sources_for(A.SUBMIT_INSPECTION.value)) == {
            S.CREATED.value,
            S.FUNDED.value,
        }


class TestWorkflowValidation:
    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", action="go"),),
            )

    def test_exit_from_terminal_rejected(self):
        with pytest.raises(ValueError, match="terminal"):
            Workflow(
                name="bad",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("b", "a", action="back"),),
                terminal_states=("b",),
            )

    def test_initial_state_must_exist(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(name="bad", description="", initial_state="x", states=("a",), transitions=())
