"""Shared types and helpers."""
