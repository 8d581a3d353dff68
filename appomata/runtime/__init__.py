"""
Runtime consumers of the automaton engine: the App and its rendering collaborator.
"""

from .app import App, AppEvent, ListRenderer, Renderer

__all__ = ["App", "AppEvent", "ListRenderer", "Renderer"]
