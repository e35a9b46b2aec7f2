"""Configuration switching engine."""
