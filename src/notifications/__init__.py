"""
Notifications Module
====================

Bounded Context for audible notifications and realtime ticket changes.

Responsibilities:
- Resolve logical sound names to playable resources
- Own the audio unlock state and the preload cache
- Play notification sounds through an ordered fallback chain
- Subscribe to ticket change events and trigger refreshes and sounds
"""

__version__ = "1.0.0"
