"""Incremental character sheet summarization engine."""
