"""
Spend Tracker - Source Package

Tracks personal expenses against a weekly spending limit and notifies
the user when spending gets close to, or goes over, that limit.

DESIGN PRINCIPLES:
1. A recorded expense is never lost because of a later step
2. Threshold checks are recomputed, never cached
3. Notifications are best-effort and never block the caller
4. Every step must be auditable
5. Storage and messaging backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Spend Tracker Team"
