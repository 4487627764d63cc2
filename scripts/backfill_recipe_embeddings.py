#!/usr/bin/env python3
"""
Compute taste embeddings for library recipes that have none cached.

Embeddings are rule-based (no API calls), so this only needs Supabase.

Usage:
    python scripts/backfill_recipe_embeddings.py [--batch-size 100] [--force]
"""

import argparse

from mealwise.config import get_settings
from mealwise.db.supabase_store import (
    LIBRARY_TABLE,
    RECIPE_EMBEDDING_TABLE,
    create_supabase_client,
)
from mealwise.models import LibraryRecipe
from mealwise.recipes.taste import dominant_axes, embed_library_recipe


def fetch_cached_ids(client) -> set[str]:
    result = client.table(RECIPE_EMBEDDING_TABLE).select("recipe_id").execute()
    return {str(row["recipe_id"]) for row in result.data or []}


def backfill(batch_size: int, force: bool) -> None:
    client = create_supabase_client(get_settings())
    cached = set() if force else fetch_cached_ids(client)

    total_updated = 0
    offset = 0
    while True:
        result = (
            client.table(LIBRARY_TABLE)
            .select("*")
            .order("id")
            .range(offset, offset + batch_size - 1)
            .execute()
        )
        rows = result.data or []
        if not rows:
            break

        pending = [r for r in rows if str(r["id"]) not in cached]
        upserts = []
        for row in pending:
            recipe = LibraryRecipe.model_validate(row)
            embedding = embed_library_recipe(recipe)
            upserts.append({"recipe_id": recipe.id, "embedding": embedding})
            print(f"  {recipe.title[:40]:40} {', '.join(dominant_axes(embedding, 3))}")

        if upserts:
            client.table(RECIPE_EMBEDDING_TABLE).upsert(upserts).execute()
            total_updated += len(upserts)

        print(f"  Processed batch {offset // batch_size + 1}: {len(pending)}/{len(rows)} recipes")
        offset += batch_size

    print(f"✅ Updated {total_updated} recipe embeddings")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill cached recipe taste embeddings")
    parser.add_argument("--batch-size", type=int, default=100, help="Library rows per page")
    parser.add_argument("--force", action="store_true", help="Recompute cached embeddings too")
    args = parser.parse_args()
    backfill(args.batch_size, args.force)
