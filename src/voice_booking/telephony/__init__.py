"""
Telephony carrier integration: call placement, webhooks and TwiML.
"""
