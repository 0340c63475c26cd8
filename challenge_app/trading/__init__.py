"""
Demo trading module.

Position ledger with margin accounting, order execution and stop-loss /
take-profit trigger evaluation.
"""
