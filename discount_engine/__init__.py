"""Discount rule evaluation and stacking engine"""

__version__ = "0.1.0"
