"""Personalized category merchandising for catalog listings."""
