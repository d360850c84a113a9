"""DM Pilot - inbox triage agent and conversational assistant for creator DMs"""

from __future__ import annotations

__version__ = "1.0.0"
