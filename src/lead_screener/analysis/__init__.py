"""LLM classification client."""
