"""The CiA 402 power state machine: status word decoding and control word transitions."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import IntEnum

logger = logging.getLogger(__name__)


class StatusWord(IntEnum):
    """Bit positions of the status word (object 0x6041)."""

    READY_TO_SWITCH_ON = 0
    SWITCHED_ON = 1
    OPERATION_ENABLED = 2
    FAULT = 3
    VOLTAGE_ENABLED = 4
    QUICK_STOP = 5
    SWITCH_ON_DISABLED = 6
    WARNING = 7
    MANUFACTURER_SPECIFIC0 = 8
    REMOTE = 9
    TARGET_REACHED = 10
    INTERNAL_LIMIT = 11
    OPERATION_MODE_SPECIFIC0 = 12
    OPERATION_MODE_SPECIFIC1 = 13
    MANUFACTURER_SPECIFIC1 = 14
    MANUFACTURER_SPECIFIC2 = 15

    @property
    def mask(self) -> int:
        return 1 << self


class ControlWord(IntEnum):
    """Bit positions of the control word (object 0x6040)."""

    SWITCH_ON = 0
    ENABLE_VOLTAGE = 1
    QUICK_STOP = 2
    ENABLE_OPERATION = 3
    OPERATION_MODE_SPECIFIC0 = 4
    OPERATION_MODE_SPECIFIC1 = 5
    OPERATION_MODE_SPECIFIC2 = 6
    FAULT_RESET = 7
    HALT = 8
    OPERATION_MODE_SPECIFIC3 = 9
    MANUFACTURER_SPECIFIC0 = 11
    MANUFACTURER_SPECIFIC1 = 12
    MANUFACTURER_SPECIFIC2 = 13
    MANUFACTURER_SPECIFIC3 = 14
    MANUFACTURER_SPECIFIC4 = 15

    @property
    def mask(self) -> int:
        return 1 << self


class InternalState(IntEnum):
    """States of the drive's power state machine."""

    UNKNOWN = 0
    START = 0
    NOT_READY_TO_SWITCH_ON = 1
    SWITCH_ON_DISABLED = 2
    READY_TO_SWITCH_ON = 3
    SWITCHED_ON = 4
    OPERATION_ENABLE = 5
    QUICK_STOP_ACTIVE = 6
    FAULT_REACTION_ACTIVE = 7
    FAULT = 8


class IllegalTransition(ValueError):
    """Raised when no control word command leads from one state to another."""

    def __init__(self, source: InternalState, target: InternalState) -> None:
        super().__init__(f"illegal transition {source.name} -> {target.name}")
        self.source = source
        self.target = target


_r = StatusWord.READY_TO_SWITCH_ON.mask
_s = StatusWord.SWITCHED_ON.mask
_o = StatusWord.OPERATION_ENABLED.mask
_f = StatusWord.FAULT.mask
_q = StatusWord.QUICK_STOP.mask
_d = StatusWord.SWITCH_ON_DISABLED.mask
_STATE_MASK = _d | _q | _f | _o | _s | _r

_DECODE: dict[int, InternalState] = {
    0: InternalState.NOT_READY_TO_SWITCH_ON,
    _q: InternalState.NOT_READY_TO_SWITCH_ON,
    _d: InternalState.SWITCH_ON_DISABLED,
    _d | _q: InternalState.SWITCH_ON_DISABLED,
    _q | _r: InternalState.READY_TO_SWITCH_ON,
    _q | _s | _r: InternalState.SWITCHED_ON,
    _q | _o | _s | _r: InternalState.OPERATION_ENABLE,
    _o | _s | _r: InternalState.QUICK_STOP_ACTIVE,
    _f | _o | _s | _r: InternalState.FAULT_REACTION_ACTIVE,
    _q | _f | _o | _s | _r: InternalState.FAULT_REACTION_ACTIVE,
    _f: InternalState.FAULT,
    _q | _f: InternalState.FAULT,
}


def decode_status_word(sw: int) -> InternalState:
    """Map a status word to the power state it reports."""
    bits = sw & _STATE_MASK
    try:
        return _DECODE[bits]
    except KeyError:
        logger.warning("Motor is currently in an unknown state: %x", bits)
        return InternalState.UNKNOWN


class State402:
    """Thread-safe tracker of the drive state decoded from status words."""

    def __init__(self) -> None:
        self._state = InternalState.UNKNOWN
        self._cond = threading.Condition()

    @property
    def state(self) -> InternalState:
        """The most recently decoded state."""
        with self._cond:
            return self._state

    def read(self, sw: int) -> InternalState:
        """Decode a status word, update the state and wake any waiters on change."""
        new_state = decode_status_word(sw)
        with self._cond:
            if new_state != self._state:
                self._state = new_state
                self._cond.notify_all()
            return self._state

    def wait_for_new_state(
        self, timeout: float, state: InternalState
    ) -> tuple[bool, InternalState]:
        """Wait up to ``timeout`` seconds for the state to differ from ``state``.

        Returns whether it changed, and the current state.
        """
        deadline = time.monotonic() + timeout
        with self._cond:
            while self._state == state:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not self._cond.wait(remaining):
                    break
            return self._state != state, self._state


@dataclass(frozen=True)
class _Op:
    to_set: int
    to_reset: int

    def __call__(self, cw: int) -> int:
        return (cw & ~self.to_reset & 0xFFFF) | self.to_set


def _build_transitions() -> dict[tuple[InternalState, InternalState], _Op]:
    s = InternalState
    cw = ControlWord
    table: dict[tuple[InternalState, InternalState], _Op] = {}

    def add(source: InternalState, target: InternalState, op: _Op) -> None:
        table.setdefault((source, target), op)

    disable_voltage = _Op(0, cw.FAULT_RESET.mask | cw.ENABLE_VOLTAGE.mask)
    add(s.READY_TO_SWITCH_ON, s.SWITCH_ON_DISABLED, disable_voltage)
    add(s.OPERATION_ENABLE, s.SWITCH_ON_DISABLED, disable_voltage)
    add(s.SWITCHED_ON, s.SWITCH_ON_DISABLED, disable_voltage)
    add(s.QUICK_STOP_ACTIVE, s.SWITCH_ON_DISABLED, disable_voltage)

    automatic = _Op(0, 0)
    add(s.START, s.NOT_READY_TO_SWITCH_ON, automatic)
    add(s.NOT_READY_TO_SWITCH_ON, s.SWITCH_ON_DISABLED, automatic)
    add(s.FAULT_REACTION_ACTIVE, s.FAULT, automatic)

    shutdown = _Op(
        cw.QUICK_STOP.mask | cw.ENABLE_VOLTAGE.mask,
        cw.FAULT_RESET.mask | cw.SWITCH_ON.mask,
    )
    add(s.SWITCH_ON_DISABLED, s.READY_TO_SWITCH_ON, shutdown)
    add(s.SWITCHED_ON, s.READY_TO_SWITCH_ON, shutdown)
    add(s.OPERATION_ENABLE, s.READY_TO_SWITCH_ON, shutdown)

    switch_on = _Op(
        cw.QUICK_STOP.mask | cw.ENABLE_VOLTAGE.mask | cw.SWITCH_ON.mask,
        cw.FAULT_RESET.mask | cw.ENABLE_OPERATION.mask,
    )
    add(s.READY_TO_SWITCH_ON, s.SWITCHED_ON, switch_on)
    add(s.OPERATION_ENABLE, s.SWITCHED_ON, switch_on)

    enable_operation = _Op(
        cw.QUICK_STOP.mask
        | cw.ENABLE_VOLTAGE.mask
        | cw.SWITCH_ON.mask
        | cw.ENABLE_OPERATION.mask,
        cw.FAULT_RESET.mask,
    )
    add(s.SWITCHED_ON, s.OPERATION_ENABLE, enable_operation)
    add(s.QUICK_STOP_ACTIVE, s.OPERATION_ENABLE, enable_operation)

    quickstop = _Op(cw.ENABLE_VOLTAGE.mask, cw.FAULT_RESET.mask | cw.QUICK_STOP.mask)
    add(s.READY_TO_SWITCH_ON, s.QUICK_STOP_ACTIVE, quickstop)
    add(s.SWITCHED_ON, s.QUICK_STOP_ACTIVE, quickstop)
    add(s.OPERATION_ENABLE, s.QUICK_STOP_ACTIVE, quickstop)

    add(s.FAULT, s.SWITCH_ON_DISABLED, _Op(cw.FAULT_RESET.mask, 0))
    return table


_TRANSITIONS = _build_transitions()

_ENABLING_STEP: dict[InternalState, InternalState] = {
    InternalState.START: InternalState.NOT_READY_TO_SWITCH_ON,
    InternalState.FAULT: InternalState.SWITCH_ON_DISABLED,
    InternalState.NOT_READY_TO_SWITCH_ON: InternalState.SWITCH_ON_DISABLED,
    InternalState.SWITCH_ON_DISABLED: InternalState.READY_TO_SWITCH_ON,
    InternalState.READY_TO_SWITCH_ON: InternalState.SWITCHED_ON,
    InternalState.SWITCHED_ON: InternalState.OPERATION_ENABLE,
    InternalState.QUICK_STOP_ACTIVE: InternalState.OPERATION_ENABLE,
    InternalState.OPERATION_ENABLE: InternalState.OPERATION_ENABLE,
    InternalState.FAULT_REACTION_ACTIVE: InternalState.FAULT,
}


def next_state_for_enabling(state: InternalState) -> InternalState:
    """Return the next state on the way from ``state`` to operation enabled."""
    return _ENABLING_STEP[InternalState(state)]


def set_transition(
    cw: int, source: InternalState, target: InternalState, follow: bool
) -> tuple[int, InternalState]:
    """Apply the command that moves the drive from ``source`` towards ``target``.

    With ``follow`` set and a target of operation enabled, only the next step of
    the enabling path is commanded. Returns the new control word and the state
    the command leads to. Raises IllegalTransition if no command exists.
    """
    source = InternalState(source)
    target = InternalState(target)
    if source == target:
        return cw, target
    hop = target
    if follow and target == InternalState.OPERATION_ENABLE:
        hop = next_state_for_enabling(source)
    try:
        op = _TRANSITIONS[(source, hop)]
    except KeyError:
        logger.warning("illegal transition %s -> %s", source.name, target.name)
        raise IllegalTransition(source, target) from None
    return op(cw), hop