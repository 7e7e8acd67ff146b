"""zapdist — epoch reward allocation and Merkle commitment engine."""

__version__ = "0.4.0"
