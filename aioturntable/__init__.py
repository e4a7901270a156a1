"""Shared radio station that keeps every listener on the same track and position."""
