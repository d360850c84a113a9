"""Conversational assistant that answers questions about the user's DMs."""
