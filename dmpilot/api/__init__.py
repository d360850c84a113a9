"""HTTP API for the DM Pilot agent and assistant."""
