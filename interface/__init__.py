"""Front ends for the engine: a text CLI and a FastAPI JSON service."""
