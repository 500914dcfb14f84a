"""Background task registry, processor and sweeper."""
