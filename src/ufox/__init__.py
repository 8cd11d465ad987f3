"""ufox: live telemetry client for the UFOX IoT backend."""

__version__ = "0.3.0"
