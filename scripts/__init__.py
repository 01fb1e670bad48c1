"""
Entry point scripts for the Deribit WebSocket client.

Scripts:
- run_volatility_example.py: Subscribe to channels and print events
"""
