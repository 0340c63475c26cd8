"""
Compounding plan module.

Builds the trading-day calendar, recomputes the ideal and actual capital
paths, and applies journal edits to the owned plan document.
"""
