from . import probes, syndesis

__all__ = ["probes", "syndesis"]
