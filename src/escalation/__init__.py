"""
Escalation Module
=================

Bounded Context for wait-time monitoring and full-screen escalation.

Responsibilities:
- Classify waiting tickets as normal / warning / critical
- Track tickets the operator dismissed from escalation
- Periodically select the single ticket shown as a full-screen alert
- Keep the display board of elapsed times current
- Provide dashboard API for alert handling
"""

__version__ = "1.0.0"
