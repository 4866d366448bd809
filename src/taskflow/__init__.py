"""TaskFlow: Kanban task store with local persistence and AI helpers."""

__version__ = "0.1.0"
