"""
Conversation layer: greeting, delegate instructions and the response delegate.
"""
