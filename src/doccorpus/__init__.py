"""doccorpus - prepared documentation corpus with path lookup and keyword search."""

__version__ = "0.1.0"
