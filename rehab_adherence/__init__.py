"""
Rehabilitation adherence and trend analysis engine.

Turns daily exercise completion, skip and pain events into progress
statistics and decides which alerts and milestones should fire.
"""

__version__ = "0.1.0"
