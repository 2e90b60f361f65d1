"""LLM provider adapters and prompt construction."""
