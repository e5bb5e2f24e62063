"""Completion context classification, item formatting, and dispatch."""
