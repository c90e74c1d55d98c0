"""
EchoMind - an emotion-aware journaling companion.

This package provides a chat service that classifies the emotional tone of
each conversation turn with a hosted language model, keeps a per-session mood
history with dashboard aggregates, and generates wellness content on demand.
"""

__version__ = "0.1.0"
