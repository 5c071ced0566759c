#!/usr/bin/env python3
"""
FAQ embedding consistency check.

Reports FAQs whose stored embedding is:
1. missing or unparseable
2. stale (embedding_updated_at older than updated_at)
3. of the wrong dimensionality for the current embedding model

With --fix, exactly those FAQs are re-embedded from their intent.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from tqdm import tqdm

# app/ holds the top-level modules
sys.path.insert(0, str(Path(__file__).parent / "app"))

from config import EMBEDDING_MODEL
from database_utils import execute_query, get_placeholder
from api.utils.faq_search import parse_embedding
from api.utils.llm import OpenAIEmbedding, build_openai_client
from api.utils.store import now_iso

EXPECTED_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


def load_faqs():
    return execute_query(
        "SELECT id, intent, embedding, embedding_updated_at, updated_at FROM faqs ORDER BY id",
        fetch_all=True,
    )


def embedding_problem(faq, expected_dim):
    """Return a short reason string when the FAQ needs re-embedding, else None."""
    vector = parse_embedding(faq.get("embedding"))
    if not vector:
        return "missing"
    if expected_dim and len(vector) != expected_dim:
        return f"dimension {len(vector)} != {expected_dim}"
    updated_at = faq.get("updated_at")
    embedded_at = faq.get("embedding_updated_at")
    if updated_at and (not embedded_at or str(embedded_at) < str(updated_at)):
        return "stale"
    return None


def find_problems(faqs, expected_dim):
    problems = []
    for faq in faqs:
        reason = embedding_problem(faq, expected_dim)
        if reason:
            problems.append((faq, reason))
    return problems


async def reembed(problems, embedder):
    ph = get_placeholder()
    fixed = 0
    for faq, _reason in tqdm(problems, desc="Re-embedding FAQs"):
        intent = (faq.get("intent") or "").strip()
        if not intent:
            print(f"  - FAQ {faq['id']}: no intent, skipped")
            continue
        vector = await embedder.embed(intent)
        if not vector:
            print(f"  - FAQ {faq['id']}: empty embedding returned, skipped")
            continue
        execute_query(
            f"UPDATE faqs SET embedding = {ph}, embedding_updated_at = {ph} WHERE id = {ph}",
            (json.dumps(vector), now_iso(), faq["id"]),
        )
        fixed += 1
    return fixed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Check FAQ embeddings against the current model")
    parser.add_argument("--fix", action="store_true", help="re-embed missing, stale or mis-sized FAQs")
    args = parser.parse_args(argv)

    expected_dim = EXPECTED_DIMENSIONS.get(EMBEDDING_MODEL)
    print("=" * 60)
    print(f"FAQ embedding check (model: {EMBEDDING_MODEL}, dim: {expected_dim or 'unknown'})")
    print("=" * 60)

    faqs = load_faqs()
    print(f"FAQs in database: {len(faqs)}")

    problems = find_problems(faqs, expected_dim)
    if not problems:
        print("✅ All FAQ embeddings are present and up to date")
        return 0

    print(f"\n⚠️  {len(problems)} FAQ(s) need re-embedding:")
    for faq, reason in problems[:20]:
        print(f"  - FAQ {faq['id']}: {reason} ({(faq.get('intent') or '')[:50]})")
    if len(problems) > 20:
        print(f"  ... and {len(problems) - 20} more")

    if not args.fix:
        print("\nRun with --fix to re-embed them.")
        return 1

    embedder = OpenAIEmbedding(build_openai_client())
    fixed = asyncio.run(reembed(problems, embedder))
    print(f"\n✅ Re-embedded {fixed} FAQ(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
