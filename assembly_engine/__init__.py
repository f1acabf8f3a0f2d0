"""Restriction digestion, ligation and Golden Gate assembly simulation."""

__version__ = "0.1.0"
