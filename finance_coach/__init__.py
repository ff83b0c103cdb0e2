"""Transaction analytics: recurring charges, monthly insights and savings-goal planning."""

__version__ = "0.1.0"
