from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from fakes import FakeCollection, FakeRedis
from recipe_site.models.taxonomy import tag_slug
from recipe_site.services.cache import CacheClient, CacheManager
from recipe_site.services.optimizer import QueryOptimizer

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_recipe_doc(i: int, **overrides: Any) -> Dict[str, Any]:
    doc = {
        "title": f"Recipe {i}",
        "slug": f"recipe-{i}",
        "description": "A simple weeknight dish.",
        "prep_time": 10,
        "cook_time": 20,
        "total_time": 30,
        "servings": 4,
        "difficulty": "easy",
        "category": "main-course",
        "cuisine": "italian",
        "ingredients": [{"name": "salt", "amount": 1, "unit": "tsp", "optional": False}],
        "instructions": [{"step": 1, "description": "Cook it."}],
        "tags": [],
        "images": [],
        "published": True,
        "featured": False,
        "rating": None,
        "author_id": "user_1",
        "created_at": BASE_TIME + timedelta(minutes=i),
        "updated_at": BASE_TIME + timedelta(minutes=i),
    }
    doc.update(overrides)
    doc.setdefault("tag_slugs", [tag_slug(t) for t in doc["tags"]])
    return doc


def pasta_catalog() -> List[Dict[str, Any]]:
    """25 published pasta dishes plus a handful of unrelated or hidden ones."""
    docs = [
        make_recipe_doc(
            i,
            title=f"Pasta No. {i}",
            slug=f"pasta-{i}",
            total_time=10 + i,
            tags=["pasta", "quick"] if i % 2 else ["pasta"],
        )
        for i in range(1, 26)
    ]
    docs += [
        make_recipe_doc(100, title="Tomato Soup", slug="tomato-soup", category="soups", servings=2, tags=["vegan"]),
        make_recipe_doc(101, title="Chocolate Cake", slug="chocolate-cake", category="desserts",
                        total_time=90, difficulty="medium", rating=4.8, featured=True),
        make_recipe_doc(102, title="Hidden Pasta", slug="hidden-pasta", published=False),
    ]
    return docs


@pytest.fixture
def recipes() -> FakeCollection:
    return FakeCollection(pasta_catalog(), unique=("slug",))


@pytest.fixture
def tags() -> FakeCollection:
    return FakeCollection(
        [
            {"name": "pasta", "slug": "pasta", "count": 25},
            {"name": "quick", "slug": "quick", "count": 13},
            {"name": "vegan", "slug": "vegan", "count": 1},
            {"name": "unused", "slug": "unused", "count": 0},
        ],
        unique=("name", "slug"),
    )


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(redis: FakeRedis) -> CacheManager:
    return CacheManager(CacheClient(prefix="recipe-website:", client=redis))


@pytest.fixture
def optimizer(cache: CacheManager) -> QueryOptimizer:
    return QueryOptimizer(cache)


@pytest.fixture
def recipe_payload() -> Dict[str, Any]:
    return {
        "title": "Creamy Mushroom Pasta",
        "description": "Silky mushroom sauce tossed with fresh tagliatelle.",
        "ingredients": [
            {"name": "tagliatelle", "amount": 250, "unit": "g"},
            {"name": "mushrooms", "amount": 300, "unit": "g"},
        ],
        "instructions": [
            {"step": 2, "description": "Toss pasta with the sauce."},
            {"step": 1, "description": "Brown the mushrooms."},
        ],
        "prepTime": 10,
        "cookTime": 15,
        "servings": 2,
        "difficulty": "easy",
        "category": "main-course",
        "cuisine": "italian",
        "tags": ["Pasta", " weeknight  dinner ", "pasta"],
        "images": [{"url": "https://img.example.com/pasta.jpg", "alt": "Pasta", "isPrimary": True}],
        "published": True,
    }
