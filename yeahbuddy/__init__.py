"""
YeahBuddy - scoped access tokens and submit-once reviews for team evaluations.
"""

__version__ = "0.1.0"
