"""HTTP surface: execution endpoint and read-only market views."""
