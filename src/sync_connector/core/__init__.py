"""Core connector logic package."""
