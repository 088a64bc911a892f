"""
HotReload API Package.

FastAPI endpoints for the reload command and preferences.
Requires Python 3.11+.
"""

# Import app lazily to avoid circular imports
# Use: from api.main import app
