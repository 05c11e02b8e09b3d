"""Unit-cell editor for quantum error-correcting code lattices."""

__version__ = "0.1.0"
