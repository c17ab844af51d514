"""Robust geometric estimation."""
