"""Core configuration, database, logging and telemetry."""
