"""Batch content generation pipeline."""
