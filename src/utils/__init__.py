"""Utilities package for the Recipe Costing engine."""
