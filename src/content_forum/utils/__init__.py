"""Small, dependency-free helpers used across services and routes."""
