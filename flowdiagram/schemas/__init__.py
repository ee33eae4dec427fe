"""Data models for runs and diagrams."""
