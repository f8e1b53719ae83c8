"""Configuration de l'application."""
