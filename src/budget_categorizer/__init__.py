"""Household bank-statement categorization engine.

Classifies transactions into categories using text rules and per-occurrence
manual locks, with bulk workflows and snapshot support for persistence.
"""

__version__ = "0.1.0"
