"""NeoSafe - safe box provisioning, ownership and telemetry backend."""
