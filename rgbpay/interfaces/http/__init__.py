"""HTTP interface for the wallet orchestrator."""
