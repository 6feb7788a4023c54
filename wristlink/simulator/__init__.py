"""
Simulator - virtual phone host and scripted session scenarios.
"""

from .virtual_host import VirtualHost
from .run_simulation import SCENARIOS, run_scenario

__all__ = ["VirtualHost", "SCENARIOS", "run_scenario"]
