"""
Utility functions module.

Trading calendar arithmetic and clock handling shared by the plan and
trading components.
"""
