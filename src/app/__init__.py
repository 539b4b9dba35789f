"""GEOLAYERS HTTP application."""
