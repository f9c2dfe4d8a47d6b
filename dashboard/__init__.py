"""Dashboard-side consumers of the pipeline envelopes."""
