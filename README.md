# canopen402

Helpers for CANopen drives that follow the CiA 402 device profile. The
package decodes the drive's power state and computes control-word
transitions. It also provides status objects that layers use to report
results, and it parses the parameter tree that describes a CANopen chain.

## Modules

- `canopen402.state` handles the 402 power state machine.
  - `StatusWord` and `ControlWord` give the bit positions. Each member has a
    `mask` property.
  - `InternalState` lists the drive states.
  - `decode_status_word(sw)` maps a status word to an `InternalState`.
    A bit pattern it does not recognise yields `InternalState.UNKNOWN`.
  - `State402` is a thread-safe tracker:
    - `read(sw)` decodes a status word and updates the state.
    - `state` returns the current state.
    - `wait_for_new_state(timeout, state)` waits for a change. It returns
      `(changed, current_state)`.
  - `next_state_for_enabling(state)` gives the next step on the way to
    *Operation Enable*.
  - `set_transition(cw, source, target, follow)` returns the new control word
    together with the state it leads to. If no command exists for that move,
    it raises `IllegalTransition`, a `ValueError`.
- `canopen402.status` provides the reporting types.
  - `Level` has the values `OK`, `WARN`, `ERROR` and `STALE`. `UNBOUNDED` is
    an alias of `STALE`.
  - `LayerState` lists the lifecycle states, from `OFF` to `READY`.
  - `LayerStatus` keeps the worst level reported and the reasons given.
    - Report with `warn(reason)` and `error(reason)`.
    - Check with `bounded(level)` and `equals(level)`.
    - Read back `level`, `reasons` and `reason`. The reasons in `reason` are
      joined with `"; "`.
  - `LayerReport` adds `add(key, value)` and `values` for diagnostic
    key/value pairs.
- `canopen402.config` parses the chain configuration.
  - `parse_object_name(name)` splits off a trailing `!`, which marks a forced
    read.
  - `merge_structs(a, b, recursive=True)` merges parameter dicts. Keys that
    are already in `a` win.
  - `normalize_nodes(nodes)` turns a node list into a dict keyed by node name.
  - `node_configs(nodes, defaults)` and `iter_node_configs(nodes, defaults)`
    build `NodeConfig` objects in key order. Each one holds:
    - the node id and name,
    - the EDS file and package,
    - the DCF overlay,
    - the log entries per `Level`,
    - the published objects.
  - Malformed input raises `ConfigError`, a `ValueError`.
- `canopen402.sync` checks the sync settings.
  - `parse_sync_settings(params, update_ms=None)` validates the sync interval,
    the overflow (it must not be `1` or greater than `240`) and the sync id.
    It returns a `SyncSettings`, which has the properties `enabled` and
    `update_period`.
  - `join(items, delim)` joins the text forms of `items` with `delim`.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

```python
from canopen402.state import InternalState, State402, set_transition

handler = State402()
state = handler.read(0x0021)          # quick stop + ready to switch on bits
assert state is InternalState.READY_TO_SWITCH_ON

cw, hop = set_transition(0, state, InternalState.OPERATION_ENABLE, True)
assert hop is InternalState.SWITCHED_ON
assert cw == 0x0007                   # switch on, enable voltage, quick stop
```

```python
from canopen402.config import node_configs

nodes = [{"name": "left_wheel", "id": 1}]
defaults = {"eds_file": "drive.eds", "publish": ["6041!"]}
for node in node_configs(nodes, defaults):
    print(node.name, node.node_id, node.eds_file, node.publish_topics)
# left_wheel 1 drive.eds ['left_wheel_6041']
```

```python
from canopen402.sync import parse_sync_settings

settings = parse_sync_settings({"interval_ms": 10, "overflow": 0})
assert settings.enabled and settings.update_period == 0.01
```

## What this package does not do

This package has no CAN bus access, no object dictionary or EDS reading, and
no motor layer that drives a device. It provides no operation-mode handlers
(profiled position, velocity, torque, homing and so on) and no command to
run. It computes states, control words, status reports and validated
configuration. Sending these to a drive is left to the caller.