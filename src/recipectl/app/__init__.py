"""Application services for recipectl."""

from .dispatch_service import ChildSupervisor, DispatchService
from .recipe_book import RecipeBook, load_book

__all__ = ["ChildSupervisor", "DispatchService", "RecipeBook", "load_book"]
