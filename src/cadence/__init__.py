"""Cadence - personal task manager with a recurring schedule engine."""
