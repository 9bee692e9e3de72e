"""Request-scoped analysis pipeline."""
