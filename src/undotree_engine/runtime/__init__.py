"""Ambient runtime services: telemetry and configuration."""
