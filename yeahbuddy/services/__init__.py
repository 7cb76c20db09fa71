"""
Services - the operations behind the HTTP surface.

Every public method takes the acting principal explicitly and checks it with
the shared PolicyEvaluator before touching storage.
"""

from yeahbuddy.services.accounts import AccountService
from yeahbuddy.services.reviews import ReviewService
from yeahbuddy.services.sweeper import RevocationSweeper

__all__ = [
    "AccountService",
    "ReviewService",
    "RevocationSweeper",
]
