from __future__ import annotations


class RecipeSiteError(Exception):
    pass


class RecipeNotFoundError(RecipeSiteError):
    def __init__(self, slug: str):
        super().__init__(f"Recipe not found: {slug}")
        self.slug = slug


class RecipeValidationError(RecipeSiteError):
    def __init__(self, details: list[dict], message: str = "Validation failed"):
        super().__init__(message)
        self.details = details


class AuthenticationError(RecipeSiteError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDeniedError(RecipeSiteError):
    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)
