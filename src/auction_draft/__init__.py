"""
Auction Draft System - Hexagonal Architecture Implementation

Turn-based, budget-constrained auction drafts run per Discord channel.
Captains bid in rotation on a shared player pool until every roster is full.
"""

from .application.draft_service import DraftEngine
from .infrastructure.container import DraftContainer, initialize_container

__all__ = [
    "DraftEngine",
    "DraftContainer",
    "initialize_container",
]
