"""
agent - Turn orchestration layer.

Contains the tool registry and built-in tools, the turn graph, the event
encoder and channel, and the executor that streams turns.
Depends on domain/ and application/. Never imports from infrastructure/.
"""
