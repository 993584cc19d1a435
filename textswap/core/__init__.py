"""Configuration, logging, exceptions and shared helpers."""
