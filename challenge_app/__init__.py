"""
Challenge App - Capital-Growth Challenge Engine

Computes the daily compounding rate required to grow a starting capital into
a target over a fixed number of trading days, tracks the recorded results
against that ideal path, and runs a demo leveraged-trading simulator whose
realized profit and loss feeds back into the plan.
"""

__version__ = "0.1.0"
__author__ = "Challenge Team"
