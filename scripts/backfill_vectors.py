#!/usr/bin/env python3
"""
Vector Backfill Script

Computes the vector and descriptive text for stored forms that have none
(forms created before retrieval was enabled), so they become retrieval
candidates. The generation prompt is not stored, so vectors are computed from
the descriptive text alone.

Usage:
    python scripts/backfill_vectors.py [--dry-run] [--owner USER_ID]
"""

import sys
import argparse


def main():
    parser = argparse.ArgumentParser(description="Vectorize stored forms that have no vector")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be done without executing")
    parser.add_argument("--owner", type=str, default=None, help="Only backfill forms of this owner")
    args = parser.parse_args()

    from formsmith.common.config import load_config
    from formsmith.common.embedding_service import get_embedding_service
    from formsmith.common.errors import FormsmithError
    from formsmith.common.record_store import create_record_store
    from formsmith.generator.record_builder import RecordBuilder

    config = load_config()

    print(f"[Backfill] Embedding mode: {config.embedding.mode}")
    embedding_svc = get_embedding_service(
        mode=config.embedding.mode,
        model=config.embedding.model,
        dimension=config.embedding.dimension,
    )
    builder = RecordBuilder(embedding_svc)

    print(f"[Backfill] Opening {config.store.backend} store at {config.store.path}...")
    try:
        store = create_record_store(config.store.backend, config.store.path)
    except (FormsmithError, ValueError) as e:
        print(f"[Backfill] ERROR: Could not open record store: {e}")
        sys.exit(1)

    records = store.list_missing_vectors(owner_id=args.owner)
    total = len(records)
    print(f"[Backfill] Found {total} forms without a vector")

    if total == 0:
        print("[Backfill] Nothing to do")
        return

    if args.dry_run:
        print("[Backfill] DRY RUN - no changes will be made")
        for record in records:
            print(f"[Backfill] Would vectorize {record.id} ({record.owner_id}): {record.title}")
        return

    updated = 0
    skipped = 0
    errors = 0

    for record in records:
        try:
            vector, summary = builder.vectorize_and_summarize("", record.definition)
            if store.attach_vector(record.owner_id, record.id, vector, summary):
                updated += 1
            else:
                skipped += 1
        except FormsmithError as e:
            print(f"[Backfill] WARNING: Failed to vectorize {record.id}: {e}")
            errors += 1

    print(f"[Backfill] Complete: {updated} updated, {skipped} skipped, {errors} errors, {total} total")


if __name__ == "__main__":
    main()
