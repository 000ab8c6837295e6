"""Scenarios shipped with loadprobe."""
