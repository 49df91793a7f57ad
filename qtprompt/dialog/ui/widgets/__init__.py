from .collapsible import CollapsibleSection

__all__ = ["CollapsibleSection"]
