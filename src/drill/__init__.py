"""drill: pull the causal history of one aggregate across services."""

__version__ = "0.1.0"
