"""Alignment toolkit: format parsing, translation, supermatrix and SNP export."""

__version__ = "1.0.0"
