"""
Messenger Sales Bot - signal core for a conversational shade-mesh sales agent.

This package decides when a burst of user messages is complete and interprets
the combined text: deferred purchase intent with a follow-up date, and
ambiguous product-topic switches confirmed by an advisory classifier.
"""

__version__ = "1.0.0"
