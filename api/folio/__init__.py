"""Folio API: posts, threaded comments, reactions and media."""

__version__ = "0.1.0"
