import threading

import pytest

from canopen402.state import (
    ControlWord,
    IllegalTransition,
    InternalState,
    State402,
    StatusWord,
    next_state_for_enabling,
    set_transition,
)


def sw(*bits):
    word = 0
    for bit in bits:
        word |= 1 << bit
    return word


def cw_bits(*bits):
    return sw(*bits)


S = StatusWord
C = ControlWord


@pytest.mark.parametrize(
    "word, expected",
    [
        (sw(), InternalState.NOT_READY_TO_SWITCH_ON),
        (sw(S.QUICK_STOP), InternalState.NOT_READY_TO_SWITCH_ON),
        (sw(S.SWITCH_ON_DISABLED), InternalState.SWITCH_ON_DISABLED),
        (sw(S.SWITCH_ON_DISABLED, S.QUICK_STOP), InternalState.SWITCH_ON_DISABLED),
        (sw(S.QUICK_STOP, S.READY_TO_SWITCH_ON), InternalState.READY_TO_SWITCH_ON),
        (
            sw(S.QUICK_STOP, S.SWITCHED_ON, S.READY_TO_SWITCH_ON),
            InternalState.SWITCHED_ON,
        ),
        (
            sw(S.QUICK_STOP, S.OPERATION_ENABLED, S.SWITCHED_ON, S.READY_TO_SWITCH_ON),
            InternalState.OPERATION_ENABLE,
        ),
        (
            sw(S.OPERATION_ENABLED, S.SWITCHED_ON, S.READY_TO_SWITCH_ON),
            InternalState.QUICK_STOP_ACTIVE,
        ),
        (
            sw(S.FAULT, S.OPERATION_ENABLED, S.SWITCHED_ON, S.READY_TO_SWITCH_ON),
            InternalState.FAULT_REACTION_ACTIVE,
        ),
        (sw(S.FAULT), InternalState.FAULT),
        (sw(S.FAULT, S.QUICK_STOP), InternalState.FAULT),
        (sw(S.SWITCH_ON_DISABLED, S.READY_TO_SWITCH_ON), InternalState.UNKNOWN),
    ],
)
def test_read_decodes_status_word(word, expected):
    assert State402().read(word) == expected


def test_read_ignores_unrelated_bits():
    base = sw(S.QUICK_STOP, S.READY_TO_SWITCH_ON)
    noisy = base | sw(S.VOLTAGE_ENABLED, S.WARNING, S.TARGET_REACHED, S.REMOTE)
    assert State402().read(noisy) == State402().read(base)


def test_state_tracks_last_read():
    handler = State402()
    assert handler.state == InternalState.UNKNOWN
    handler.read(sw(S.FAULT))
    assert handler.state == InternalState.FAULT


def test_wait_times_out_without_change():
    handler = State402()
    handler.read(sw(S.SWITCH_ON_DISABLED))
    changed, state = handler.wait_for_new_state(0.05, InternalState.SWITCH_ON_DISABLED)
    assert changed is False
    assert state == InternalState.SWITCH_ON_DISABLED


def test_wait_returns_immediately_if_already_different():
    handler = State402()
    handler.read(sw(S.FAULT))
    changed, state = handler.wait_for_new_state(0.0, InternalState.SWITCHED_ON)
    assert changed is True
    assert state == InternalState.FAULT


def test_wait_wakes_on_new_state():
    handler = State402()
    handler.read(sw(S.SWITCH_ON_DISABLED))
    timer = threading.Timer(
        0.05, handler.read, args=(sw(S.QUICK_STOP, S.READY_TO_SWITCH_ON),)
    )
    timer.start()
    try:
        changed, state = handler.wait_for_new_state(5.0, InternalState.SWITCH_ON_DISABLED)
    finally:
        timer.join()
    assert changed is True
    assert state == InternalState.READY_TO_SWITCH_ON


def test_shutdown_command_bits():
    cw, hop = set_transition(
        cw_bits(C.FAULT_RESET, C.SWITCH_ON),
        InternalState.SWITCH_ON_DISABLED,
        InternalState.READY_TO_SWITCH_ON,
        False,
    )
    assert hop == InternalState.READY_TO_SWITCH_ON
    assert cw == cw_bits(C.QUICK_STOP, C.ENABLE_VOLTAGE)


def test_fault_reset_sets_only_reset_bit():
    cw, hop = set_transition(0, InternalState.FAULT, InternalState.SWITCH_ON_DISABLED, False)
    assert cw == cw_bits(C.FAULT_RESET)
    assert hop == InternalState.SWITCH_ON_DISABLED


def test_transition_keeps_unrelated_bits():
    start = cw_bits(C.HALT, C.OPERATION_MODE_SPECIFIC0)
    cw, _ = set_transition(
        start, InternalState.SWITCHED_ON, InternalState.OPERATION_ENABLE, False
    )
    assert cw & start == start
    assert cw & cw_bits(C.ENABLE_OPERATION)


def test_same_state_leaves_word_untouched():
    word = cw_bits(C.HALT)
    assert set_transition(word, InternalState.FAULT, InternalState.FAULT, True) == (
        word,
        InternalState.FAULT,
    )


def test_follow_walks_to_operation_enable():
    state = InternalState.FAULT
    cw = 0
    visited = []
    while state != InternalState.OPERATION_ENABLE:
        cw, state = set_transition(cw, state, InternalState.OPERATION_ENABLE, True)
        visited.append(state)
    assert visited == [
        InternalState.SWITCH_ON_DISABLED,
        InternalState.READY_TO_SWITCH_ON,
        InternalState.SWITCHED_ON,
        InternalState.OPERATION_ENABLE,
    ]
    assert cw == cw_bits(
        C.QUICK_STOP, C.ENABLE_VOLTAGE, C.SWITCH_ON, C.ENABLE_OPERATION
    )


def test_illegal_transition_raises():
    with pytest.raises(IllegalTransition) as info:
        set_transition(0, InternalState.FAULT, InternalState.OPERATION_ENABLE, False)
    assert info.value.source == InternalState.FAULT
    assert info.value.target == InternalState.OPERATION_ENABLE


def test_quick_stop_from_fault_is_illegal():
    with pytest.raises(IllegalTransition):
        set_transition(0, InternalState.FAULT, InternalState.QUICK_STOP_ACTIVE, True)


@pytest.mark.parametrize(
    "state, expected",
    [
        (InternalState.START, InternalState.NOT_READY_TO_SWITCH_ON),
        (InternalState.FAULT, InternalState.SWITCH_ON_DISABLED),
        (InternalState.NOT_READY_TO_SWITCH_ON, InternalState.SWITCH_ON_DISABLED),
        (InternalState.SWITCH_ON_DISABLED, InternalState.READY_TO_SWITCH_ON),
        (InternalState.READY_TO_SWITCH_ON, InternalState.SWITCHED_ON),
        (InternalState.SWITCHED_ON, InternalState.OPERATION_ENABLE),
        (InternalState.QUICK_STOP_ACTIVE, InternalState.OPERATION_ENABLE),
        (InternalState.OPERATION_ENABLE, InternalState.OPERATION_ENABLE),
        (InternalState.FAULT_REACTION_ACTIVE, InternalState.FAULT),
    ],
)
def test_next_state_for_enabling(state, expected):
    assert next_state_for_enabling(state) == expected


@pytest.mark.parametrize("state", list(InternalState))
def test_every_enabling_step_has_a_command(state):
    if state == InternalState.OPERATION_ENABLE:
        assert next_state_for_enabling(state) == state
    else:
        _, hop = set_transition(0, state, InternalState.OPERATION_ENABLE, True)
        assert hop == next_state_for_enabling(state)