"""
Outbound booking calls: session state, registry and the control API.
"""
