"""Conversation store backends."""
