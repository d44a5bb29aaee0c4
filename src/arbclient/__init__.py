"""
Realtime arbitrage session client.

Keeps a live, change-annotated view of arbitrage opportunities pushed over a
Socket.IO channel while managing an authenticated REST session whose access
tokens expire.
"""

__version__ = "1.0.0"
