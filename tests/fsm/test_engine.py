import gc
import logging

import pytest

from config.model_config import ModelConfig
from fsm.engine import FSM, FiniteStateMachine, target_name_of
from fsm.exceptions import (
    ArgumentContractError,
    LoadError,
    MissingImplementationError,
    NoCurrentStateError,
    NoValidTransitionError,
    TransitionFailedError,
)
from fsm.states import LoadStrategy, State
from fsm.strategies import first_match, only_one
from fsm.transitions import Transition
from tests.fsm.sample_model import Home, Login, Profile, Settings, Wizard


def go_guard(state, go=False, **_):
    return go is True


class B(State):
    def verify_as_current_state(self):
        return True


class UnverifiedB(State):
    state_name = "B"

    def verify_as_current_state(self):
        return False


class C(State):
    def verify_as_current_state(self):
        return True


class A(State):
    @classmethod
    def transitions(cls):
        return [Transition(target=B, source_type=cls, when=go_guard)]

    def verify_as_current_state(self):
        return True


class AToUnverified(State):
    @classmethod
    def transitions(cls):
        return [Transition(target=UnverifiedB, source_type=cls, when=go_guard)]

    def verify_as_current_state(self):
        return True


class AWithTwoExits(State):
    @classmethod
    def transitions(cls):
        return [
            Transition(target=C, source_type=cls),
            Transition(target=B, source_type=cls),
        ]

    def verify_as_current_state(self):
        return True


class RecordingStrategy:
    def __init__(self):
        self.seen = []

    def __call__(self, candidates):
        self.seen.append(list(candidates))
        if not candidates:
            raise NoValidTransitionError("empty")
        return candidates[0]


class FakeDriver:
    def __init__(self):
        self.waits = []

    def wait(self, timeout_ms):
        self.waits.append(timeout_ms)
        return "ignored"


def test_starts_without_current_state():
    machine = FiniteStateMachine()
    assert machine.current_state is None
    assert FSM is FiniteStateMachine


def test_make_transition_without_current_state_fails():
    machine = FiniteStateMachine(selection_strategy=first_match)
    with pytest.raises(NoCurrentStateError):
        machine.make_transition()


def test_valid_transitions_without_current_state_fails():
    machine = FiniteStateMachine()
    with pytest.raises(NoCurrentStateError):
        machine.valid_transitions(A.transitions())


def test_use_state_type_loads_instantiates_and_back_links():
    machine = FiniteStateMachine()

    state = machine.use_state_type(A)

    assert isinstance(state, A)
    assert machine.current_state is state
    assert state.model is machine
    assert machine.state_loaded(A) is True
    assert machine.transitions_loaded(A) is False


def test_use_state_type_replaces_instance():
    machine = FiniteStateMachine()
    first = machine.use_state_type(A)
    second = machine.use_state_type(A)
    assert first is not second
    assert machine.current_state is second


def test_use_state_type_with_eager_strategy():
    machine = FiniteStateMachine()
    machine.use_state_type(A, strategy=LoadStrategy.EAGER)
    assert machine.transitions_loaded(A) is True


def test_use_state_type_propagates_load_error():
    machine = FiniteStateMachine()
    with pytest.raises(LoadError):
        machine.use_state_type("tests.fsm.sample_model:NotAState")
    assert machine.current_state is None


def test_back_reference_does_not_keep_machine_alive():
    machine = FiniteStateMachine()
    state = machine.use_state_type(A)
    del machine
    gc.collect()
    assert state.model is None


def test_with_current_state_applies_function():
    machine = FiniteStateMachine()
    machine.use_state_type(A)
    assert machine.with_current_state(lambda state: type(state).__name__) == "A"


def test_guard_false_yields_empty_validated_set():
    strategy = RecordingStrategy()
    machine = FiniteStateMachine(selection_strategy=strategy)
    machine.use_state_type(A)

    with pytest.raises(NoValidTransitionError):
        machine.make_transition(go=False)

    assert strategy.seen == [[]]
    assert isinstance(machine.current_state, A)


def test_guard_true_executes_transition():
    strategy = RecordingStrategy()
    machine = FiniteStateMachine(selection_strategy=strategy)
    machine.use_state_type(A)

    new_state = machine.make_transition(go=True)

    assert isinstance(new_state, B)
    assert machine.current_state is new_state
    assert new_state.model is machine
    assert len(strategy.seen[0]) == 1


def test_failed_verification_leaves_unverified_state_current(machine):
    machine.use_state_type(AToUnverified)

    with pytest.raises(TransitionFailedError) as excinfo:
        machine.make_transition(go=True)

    assert isinstance(machine.current_state, UnverifiedB)
    assert excinfo.value.state is machine.current_state


def test_make_transition_to_narrows_candidates_by_name():
    strategy = RecordingStrategy()
    machine = FiniteStateMachine(selection_strategy=strategy)
    machine.use_state_type(AWithTwoExits)

    new_state = machine.make_transition_to("B")

    assert [t.target_name for t in strategy.seen[0]] == ["B"]
    assert isinstance(new_state, B)


def test_make_transition_to_accepts_state_type():
    strategy = RecordingStrategy()
    machine = FiniteStateMachine(selection_strategy=strategy)
    machine.use_state_type(AWithTwoExits)

    machine.make_transition_to(C)

    assert isinstance(machine.current_state, C)
    assert [t.target_name for t in strategy.seen[0]] == ["C"]


def test_make_transition_to_combines_caller_predicate():
    strategy = RecordingStrategy()
    machine = FiniteStateMachine(selection_strategy=strategy)
    machine.use_state_type(AWithTwoExits)

    with pytest.raises(NoValidTransitionError):
        machine.make_transition_to("B", prefilter=lambda transition: transition.priority > 0)

    assert strategy.seen == [[]]


def test_make_transition_to_unknown_target_hands_empty_set_to_strategy():
    strategy = RecordingStrategy()
    machine = FiniteStateMachine(selection_strategy=strategy)
    machine.use_state_type(AWithTwoExits)

    with pytest.raises(NoValidTransitionError):
        machine.make_transition_to("Nowhere")
    assert strategy.seen == [[]]


def test_base_selection_strategy_is_missing():
    machine = FiniteStateMachine()
    machine.use_state_type(AWithTwoExits)

    with pytest.raises(MissingImplementationError):
        machine.make_transition()
    with pytest.raises(MissingImplementationError):
        machine.selection_strategy([])


def test_subclass_can_override_hooks():
    class FirstToC(FiniteStateMachine):
        def passes_prefilter(self, transition):
            return transition.target_name == "C"

        def selection_strategy(self, candidates):
            return candidates[0]

    machine = FirstToC()
    machine.use_state_type(AWithTwoExits)
    assert isinstance(machine.make_transition(), C)


def test_prefiltered_transitions_preserve_order_and_subset():
    machine = FiniteStateMachine(prefilter=lambda transition: transition.target_name != "skip")
    transitions = [
        Transition(target=B, name="one"),
        Transition(target=B, name="skip"),
        Transition(target=B, name="two"),
        Transition(target=B, name="three"),
    ]

    result = machine.prefiltered_transitions(
        transitions, prefilter=lambda transition: transition.target_name != "two"
    )

    assert [t.target_name for t in result] == ["one", "three"]
    assert all(t in transitions for t in result)
    assert machine.prefiltered_transitions(transitions) == [
        transitions[0], transitions[2], transitions[3]
    ]


def test_default_prefilter_accepts_everything():
    machine = FiniteStateMachine()
    transitions = AWithTwoExits.transitions()
    assert machine.prefiltered_transitions(transitions) == transitions


def test_execute_transition_rejects_non_transition():
    machine = FiniteStateMachine()
    machine.use_state_type(A)
    with pytest.raises(ArgumentContractError):
        machine.execute_transition("B")
    with pytest.raises(TypeError):
        machine.execute_transition(None)


def test_strategy_returning_list_is_contract_violation():
    machine = FiniteStateMachine(selection_strategy=lambda candidates: candidates)
    machine.use_state_type(AWithTwoExits)

    with pytest.raises(ArgumentContractError):
        machine.make_transition()
    assert isinstance(machine.current_state, AWithTwoExits)


def test_context_reaches_guards_and_actions(machine):
    log = []
    machine.use_state_type(Login)

    machine.make_transition(username="alice", log=log)

    assert isinstance(machine.current_state, Home)
    assert log == [("submit_login", "Login")]


def test_late_bound_target_is_resolved_on_execution(machine):
    log = []
    machine.use_state_type(Home)

    machine.make_transition_to(Settings, log=log)

    assert isinstance(machine.current_state, Settings)
    assert log == [("open_settings", "Home")]


def test_make_transition_to_matches_declared_name_of_string_target():
    machine = FiniteStateMachine(selection_strategy=only_one)
    machine.use_state_type(Profile)

    assert isinstance(machine.make_transition_to(Settings), Settings)

    machine.use_state_type(Profile)
    assert isinstance(machine.make_transition_to(Wizard.Step), Wizard.Step)

    machine.use_state_type(Profile)
    assert isinstance(machine.make_transition_to("SettingsPage"), Settings)


def test_driver_waits_after_action():
    driver = FakeDriver()
    machine = FiniteStateMachine(selection_strategy=first_match, driver=driver, driver_wait_ms=500)
    machine.use_state_type(A)

    machine.make_transition(go=True)

    assert driver.waits == [500]


def test_driver_wait_defaults_to_settings(monkeypatch):
    import fsm.engine as engine_module

    monkeypatch.setattr(engine_module.settings, "DRIVER_WAIT_MS", 1234)
    driver = FakeDriver()
    machine = FiniteStateMachine(selection_strategy=first_match, driver=driver)
    machine.use_state_type(A)

    machine.make_transition(go=True)

    assert driver.waits == [1234]


def test_action_failure_propagates_and_keeps_current_state():
    def explode(state, **_):
        raise RuntimeError("driver lost")

    class Fragile(State):
        @classmethod
        def transitions(cls):
            return [Transition(target=B, source_type=cls, by=explode)]

        def verify_as_current_state(self):
            return True

    machine = FiniteStateMachine(selection_strategy=first_match)
    start = machine.use_state_type(Fragile)

    with pytest.raises(RuntimeError):
        machine.make_transition()
    assert machine.current_state is start


def test_reset_clears_current_state_but_keeps_registry(machine):
    machine.use_state_type(A)
    machine.make_transition(go=True)

    machine.reset()

    assert machine.current_state is None
    assert machine.transitions_loaded(A) is True


def test_target_name_of():
    assert target_name_of(B) == "B"
    assert target_name_of(UnverifiedB) == "B"
    assert target_name_of("Anything") == "Anything"
    with pytest.raises(ArgumentContractError):
        target_name_of(42)


def test_instance_log_level_filters_engine_logs(caplog):
    verbose = FiniteStateMachine(
        config=ModelConfig(id="verbose", log_level="info"), selection_strategy=first_match
    )
    quiet = FiniteStateMachine(config=ModelConfig(id="quiet"), selection_strategy=first_match)

    with caplog.at_level(logging.DEBUG, logger="fsm.engine"):
        for machine in (verbose, quiet):
            machine.use_state_type(A)
            machine.make_transition(go=True)

    assert "Transitioned A -> B" in [record.getMessage() for record in caplog.records]
    assert {record.model_id for record in caplog.records} == {"verbose"}
