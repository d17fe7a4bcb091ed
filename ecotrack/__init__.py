"""
EcoTrack Reward Engine

Turns sustained, confident waste classifications into eco points
while blocking repeated payouts for the same event.
"""

__version__ = "1.0.0"
__author__ = "EcoTrack Project"
