"""Playback session core: track grouping, queue building and engine reconciliation."""
