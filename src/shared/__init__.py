"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Escalation and Notifications).

Architecture Pattern: Modular Monolith
- Each module (escalation, notifications) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from Escalation or Notifications to shared kernel.
"""

__version__ = "1.0.0"
