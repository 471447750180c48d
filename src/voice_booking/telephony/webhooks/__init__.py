"""
Carrier webhook endpoints and the callback router behind them.
"""
