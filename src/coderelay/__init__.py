"""Streams the next chat completion for a stored conversation."""
