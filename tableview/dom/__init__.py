from .anchors import Anchors
from .document import Document, DomEvent

__all__ = ["Anchors", "Document", "DomEvent"]
