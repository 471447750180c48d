"""
Voice booking agent.

Places an outbound call to a salon on behalf of a customer, negotiates an
appointment through an LLM-driven dialogue and reports the outcome.
"""

__version__ = "0.1.0"
