"""Settings, persistence and quota infrastructure."""
