"""Cross-cutting managers shared by every layer of the application."""
