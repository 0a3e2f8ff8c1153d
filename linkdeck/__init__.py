"""Linkdeck: curated link directory service."""
