"""CiA 402 power state machine, layer status reporting and CANopen chain configuration parsing."""

__version__ = "0.1.0"
__all__ = ["status", "state", "config", "sync"]