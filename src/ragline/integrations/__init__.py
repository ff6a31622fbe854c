"""Optional integrations with agent frameworks."""
