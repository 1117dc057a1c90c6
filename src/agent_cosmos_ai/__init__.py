"""Agent Cosmos AI - a Cosmos wallet plugin for AI agents."""

__version__ = "0.1.0"
