"""
HotReload API Routes Package.

Requires Python 3.11+.
"""
