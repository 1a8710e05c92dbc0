"""Content cluster orchestration engine."""
