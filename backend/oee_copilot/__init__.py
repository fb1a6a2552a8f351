"""OEE Copilot backend."""
