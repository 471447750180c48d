"""
Language backend used by the response delegate.
"""
