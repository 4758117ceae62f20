"""Habitus33 notification engagement and multi-channel dispatch engine."""
