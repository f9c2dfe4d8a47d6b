"""HTTP API for the whale-watch pipelines."""
