"""Conversation persistence and chat orchestration."""
